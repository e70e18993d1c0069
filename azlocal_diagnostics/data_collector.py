"""
Data Collector for Azure Local Diagnostics

This module handles fetching data from the host through PowerShell,
including network intents, adapter details, cluster identity and storage
inventory (physical disks, virtual disks, cluster shared volumes, volumes).
"""

import logging
import os
import platform
from typing import List, Optional

from .exceptions import ObjectNotFoundError, PowerShellError
from .models import (
    CSV_FIELDS,
    INTENT_FIELDS,
    PHYSICAL_DISK_FIELDS,
    VIRTUAL_DISK_FIELDS,
    VOLUME_FIELDS,
    AdapterDetail,
    Record,
    Sentinel,
    records_from_json,
)
from .validators import InputValidator

# Markers in Get-Cluster errors meaning the host simply is not a cluster member
_NOT_CLUSTERED_MARKERS = ("cluster service", "not recognized", "commandnotfound", "objectnotfound")


def _as_string(name: str, expression: Optional[str] = None) -> str:
    """Calculated property that forces enum values to their names"""
    return f"@{{n='{name}';e={{[string]({expression or '$_.' + name})}}}}"


def _joined(name: str) -> str:
    """Calculated property for enum arrays such as OperationalStatus"""
    return f"@{{n='{name}';e={{($_.{name} | ForEach-Object {{ [string]$_ }}) -join ', '}}}}"


PHYSICAL_DISK_SELECT = ", ".join(
    [
        "FriendlyName",
        "SerialNumber",
        _as_string("MediaType"),
        _as_string("BusType"),
        _as_string("HealthStatus"),
        _joined("OperationalStatus"),
        _as_string("Usage"),
        "Size",
        "DeviceId",
        "PhysicalLocation",
        "FirmwareVersion",
    ]
)

VIRTUAL_DISK_SELECT = ", ".join(
    [
        "FriendlyName",
        "ResiliencySettingName",
        "NumberOfDataCopies",
        _as_string("ProvisioningType"),
        _as_string("HealthStatus"),
        _joined("OperationalStatus"),
        "Size",
        "FootprintOnPool",
        "UniqueId",
    ]
)

VOLUME_SELECT = ", ".join(
    [
        "FileSystemLabel",
        _as_string("DriveLetter"),
        _as_string("FileSystem", "$_.FileSystemType"),
        _as_string("HealthStatus"),
        "Size",
        "SizeRemaining",
        "Path",
    ]
)

CSV_SELECT = ", ".join(
    [
        "Name",
        _as_string("State"),
        _as_string("OwnerNode"),
        _as_string("FriendlyVolumeName", "$_.SharedVolumeInfo.FriendlyVolumeName"),
    ]
)

ADAPTER_SELECT = ", ".join(
    [
        "Name",
        "InterfaceDescription",
        _as_string("Status"),
        "MacAddress",
        _as_string("DriverName", "$_.DriverFileName"),
        _as_string("DriverVersion", "$_.DriverVersionString"),
        "DriverDate",
    ]
)


def get_host_name() -> str:
    """Local host name, read from the environment"""
    return os.environ.get("COMPUTERNAME") or platform.node() or "[UNKNOWN HOST]"


class DataCollector:
    """Collects Azure Local host and cluster information."""

    def __init__(self, executor, logger: Optional[logging.Logger] = None):
        """
        Initialize DataCollector.

        Args:
            executor: PowerShellExecutor instance for running cmdlets
            logger: Optional logger instance. If not provided, creates a default logger.
        """
        self.executor = executor
        self.logger = logger or logging.getLogger("azlocal_diagnostics.DataCollector")

    def get_cluster_name(self) -> str:
        """
        Resolve the failover cluster name.

        Returns:
            Cluster name, or a NOT CLUSTERED / CLUSTER INFO UNAVAILABLE sentinel.
            Never raises.
        """
        try:
            result = self.executor.execute("Get-Cluster | Select-Object Name")
        except PowerShellError as e:
            text = f"{e} {e.stderr or ''} {e.category or ''}".lower()
            if any(marker in text for marker in _NOT_CLUSTERED_MARKERS):
                self.logger.info("Host is not a member of a failover cluster")
                return Sentinel.NOT_CLUSTERED
            self.logger.warning(f"Failed to retrieve cluster information: {e}")
            return Sentinel.CLUSTER_INFO_UNAVAILABLE
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning(f"Failed to retrieve cluster information: {e}")
            return Sentinel.CLUSTER_INFO_UNAVAILABLE

        if isinstance(result, list):
            result = result[0] if result else None
        if not isinstance(result, dict):
            return Sentinel.NOT_CLUSTERED

        name = result.get("Name")
        if not name or not str(name).strip():
            return Sentinel.NOT_CLUSTERED
        return str(name)

    def collect_intents(self) -> List[Record]:
        """
        Fetch all network intents.

        Returns:
            Intent records, empty when none are configured
        """
        self.logger.info("Retrieving network intents...")
        data = self.executor.execute_list("Get-NetIntent")
        intents = records_from_json(data, INTENT_FIELDS)
        self.logger.info(f"Found {len(intents)} network intent(s)")
        return intents

    def lookup_ipv4_addresses(self, adapter_name: str) -> List[str]:
        """
        Fetch IPv4 addresses bound to an interface as ``address/prefix`` strings.

        Raises:
            PowerShellError: If the lookup fails for a reason other than no addresses
        """
        quoted = InputValidator.quote_argument(adapter_name)
        try:
            data = self.executor.execute_list(
                f"Get-NetIPAddress -InterfaceAlias {quoted} -AddressFamily IPv4 | Select-Object IPAddress, PrefixLength"
            )
        except ObjectNotFoundError:
            return []

        addresses = []
        for entry in data:
            if not isinstance(entry, dict):
                continue
            address = str(entry.get("IPAddress") or "").strip()
            if not address:
                continue
            prefix = entry.get("PrefixLength")
            addresses.append(f"{address}/{prefix}" if prefix is not None else address)
        return addresses

    def lookup_adapter(self, adapter_name: str) -> AdapterDetail:
        """
        Resolve one adapter name into a fixed-shape AdapterDetail.

        Not-found adapters get NotFound status; any other failure gets Error
        status with the message. Never raises.
        """
        try:
            quoted = InputValidator.quote_argument(adapter_name)
            data = self.executor.execute_list(f"Get-NetAdapter -Name {quoted} | Select-Object {ADAPTER_SELECT}")
        except ObjectNotFoundError:
            self.logger.warning(f"Adapter '{adapter_name}' not found")
            return AdapterDetail.not_found(adapter_name)
        except Exception as e:  # pylint: disable=broad-except
            self.logger.error(f"Failed to retrieve adapter '{adapter_name}': {e}")
            return AdapterDetail.error(adapter_name, str(e))

        if not data or not isinstance(data[0], dict):
            self.logger.warning(f"Adapter '{adapter_name}' not found")
            return AdapterDetail.not_found(adapter_name)

        adapter = data[0]
        detail = AdapterDetail(
            name=adapter.get("Name") or adapter_name,
            description=adapter.get("InterfaceDescription"),
            status=adapter.get("Status"),
            mac_address=adapter.get("MacAddress"),
            driver_name=adapter.get("DriverName"),
            driver_version=adapter.get("DriverVersion"),
            driver_date=adapter.get("DriverDate"),
        )

        try:
            detail.ipv4_addresses = self.lookup_ipv4_addresses(adapter_name)
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning(f"Failed to retrieve IPv4 addresses for '{adapter_name}': {e}")

        return detail

    def collect_physical_disks(self) -> List[Record]:
        """
        Fetch physical disks tagged with the host they are attached to.

        Uses the storage nodes of the clustered subsystem and falls back to the
        local host's disks otherwise. A disk reported more than once for the
        same host is kept once.
        """
        self.logger.info("Retrieving physical disks...")
        script = (
            "Get-StorageSubSystem -FriendlyName 'Clustered*' | Get-StorageNode | "
            "ForEach-Object { $node = $_.Name; "
            f"Get-PhysicalDisk -StorageNode $_ -PhysicallyConnected | Select-Object @{{n='Host';e={{$node}}}}, "
            f"{PHYSICAL_DISK_SELECT} }}"
        )
        try:
            data = self.executor.execute_list(script)
        except PowerShellError as e:
            self.logger.debug(f"Storage node query failed, using local disks: {e}")
            data = []

        if not data:
            host = InputValidator.quote_argument(get_host_name())
            data = self.executor.execute_list(
                f"Get-PhysicalDisk | Select-Object @{{n='Host';e={{{host}}}}}, {PHYSICAL_DISK_SELECT}"
            )

        disks = records_from_json(data, PHYSICAL_DISK_FIELDS)
        disks = self._unique_disks(disks)
        self.logger.info(f"Found {len(disks)} physical disk(s)")
        return disks

    def _unique_disks(self, disks: List[Record]) -> List[Record]:
        """Drop repeated rows for the same disk on the same host, keeping the first"""
        seen = set()
        unique = []
        for disk in disks:
            identities = [disk.value(name) for name in ("SerialNumber", "DeviceId")]
            identity = next((str(v).strip() for v in identities if v is not None and str(v).strip()), None)
            if identity is None:
                unique.append(disk)
                continue
            key = (str(disk.value("Host")), identity)
            if key in seen:
                self.logger.debug(f"Skipping duplicate disk {key[1]} on {key[0]}")
                continue
            seen.add(key)
            unique.append(disk)
        return unique

    def collect_virtual_disks(self) -> List[Record]:
        """Fetch virtual disks."""
        self.logger.info("Retrieving virtual disks...")
        data = self.executor.execute_list(f"Get-VirtualDisk | Select-Object {VIRTUAL_DISK_SELECT}")
        disks = records_from_json(data, VIRTUAL_DISK_FIELDS)
        self.logger.info(f"Found {len(disks)} virtual disk(s)")
        return disks

    def collect_cluster_shared_volumes(self) -> List[Record]:
        """
        Fetch cluster shared volumes.

        Raises:
            PowerShellError: If the query fails (callers treat this as unavailable)
        """
        self.logger.info("Retrieving cluster shared volumes...")
        data = self.executor.execute_list(f"Get-ClusterSharedVolume | Select-Object {CSV_SELECT}")
        return records_from_json(data, CSV_FIELDS)

    def collect_volumes(self) -> List[Record]:
        """
        Fetch volumes.

        Raises:
            PowerShellError: If the query fails (callers treat this as unavailable)
        """
        self.logger.info("Retrieving volumes...")
        data = self.executor.execute_list(f"Get-Volume | Select-Object {VOLUME_SELECT}")
        return records_from_json(data, VOLUME_FIELDS)
