"""
Unit tests for the storage report
"""

import io
import tempfile
import unittest
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

from azlocal_diagnostics.exceptions import PowerShellError
from azlocal_diagnostics.models import PHYSICAL_DISK_FIELDS, Record
from azlocal_diagnostics.report_writer import ReportWriter
from azlocal_diagnostics.storage_report import (
    CSV_INFO_UNAVAILABLE,
    CsvMatcher,
    StorageInventory,
    StorageReportGenerator,
    bytes_to_tb,
    collect_inventory,
    export_csv,
    run_storage_report,
    sum_tb,
)

TB = 1024**4
GENERATED_AT = datetime(2026, 1, 2, 3, 4, 5)


def physical(host, name, serial, size=TB, media="SSD"):
    return Record.from_dict(
        {
            "Host": host,
            "FriendlyName": name,
            "SerialNumber": serial,
            "MediaType": media,
            "BusType": "NVMe",
            "HealthStatus": "Healthy",
            "OperationalStatus": "OK",
            "Usage": "Auto-Select",
            "Size": size,
        },
        PHYSICAL_DISK_FIELDS,
    )


def virtual(name, size=TB, footprint=2 * TB):
    return Record.from_dict(
        {
            "FriendlyName": name,
            "ResiliencySettingName": "Mirror",
            "NumberOfDataCopies": 2,
            "ProvisioningType": "Fixed",
            "HealthStatus": "Healthy",
            "OperationalStatus": "OK",
            "Size": size,
            "FootprintOnPool": footprint,
        }
    )


def csv_volume(name, mount=None):
    return Record.from_dict({"Name": name, "State": "Online", "FriendlyVolumeName": mount})


class TestSizeConversion(unittest.TestCase):
    """Test byte to terabyte conversion"""

    def test_half_rounds_up(self):
        self.assertEqual(bytes_to_tb("1105009185914.88"), Decimal("1.01"))

    def test_whole_terabytes(self):
        self.assertEqual(str(bytes_to_tb(TB)), "1.00")
        self.assertEqual(str(bytes_to_tb(0)), "0.00")

    def test_non_numeric(self):
        for value in [None, True, "", "n/a", "Infinity", "-Infinity", "NaN", float("inf"), "1e40"]:
            self.assertIsNone(bytes_to_tb(value))

    def test_sum_skips_unknown(self):
        self.assertEqual(sum_tb([Decimal("1.01"), None, Decimal("2.00")]), Decimal("3.01"))
        self.assertEqual(str(sum_tb([])), "0.00")


class TestCsvMatcher(unittest.TestCase):
    """Test CSV classification rules"""

    def test_name_rule(self):
        matcher = CsvMatcher(["name"])

        self.assertTrue(matcher.is_csv(virtual("UserStorage_1"), [csv_volume("Cluster Virtual Disk (UserStorage_1)")]))
        self.assertTrue(matcher.is_csv(virtual("UserStorage_1"), [csv_volume("userstorage_1")]))
        self.assertFalse(matcher.is_csv(virtual("UserStorage_10"), [csv_volume("UserStorage_1")]))

    def test_path_rule(self):
        matcher = CsvMatcher(["path"])
        csvs = [csv_volume("Cluster Disk 1", "C:\\ClusterStorage\\UserStorage_2\\")]

        self.assertTrue(matcher.is_csv(virtual("UserStorage_2"), csvs))
        self.assertFalse(matcher.is_csv(virtual("Infrastructure_1"), csvs))

    def test_label_rule(self):
        matcher = CsvMatcher(["label"])
        volumes = [
            Record.from_dict({"FileSystemLabel": "UserStorage_3", "FileSystem": "CSVFS_ReFS"}),
            Record.from_dict({"FileSystemLabel": "Local", "FileSystem": "NTFS"}),
        ]

        self.assertTrue(matcher.is_csv(virtual("UserStorage_3"), [], volumes))
        self.assertFalse(matcher.is_csv(virtual("Local"), [], volumes))
        self.assertTrue(matcher.needs_volumes)
        self.assertFalse(matcher.needs_csvs)

    def test_disk_without_name(self):
        self.assertFalse(CsvMatcher().is_csv(Record.from_dict({"FriendlyName": None}), [csv_volume("x")]))

    def test_invalid_rules(self):
        with self.assertRaises(ValueError):
            CsvMatcher([])
        with self.assertRaises(ValueError):
            CsvMatcher(["owner"])


class TestCollectInventory(unittest.TestCase):
    """Test storage inventory collection"""

    def setUp(self):
        self.collector = MagicMock()
        self.collector.collect_physical_disks.return_value = [physical("node1", "SSD", "S1")]
        self.collector.collect_virtual_disks.return_value = [virtual("UserStorage_1"), virtual("ClusterPerformanceHistory")]
        self.collector.collect_cluster_shared_volumes.return_value = [
            csv_volume("Cluster Virtual Disk (UserStorage_1)", "C:\\ClusterStorage\\UserStorage_1")
        ]

    def test_flags_csv_disks(self):
        inventory = collect_inventory(self.collector, logger=MagicMock())

        self.assertTrue(inventory.csv_info_available)
        self.assertEqual([d.value("FriendlyName") for d in inventory.csv_disks], ["UserStorage_1"])
        self.assertIs(inventory.virtual_disks[1].value("IsCSV"), False)
        self.collector.collect_volumes.assert_not_called()

    def test_csv_query_failure(self):
        self.collector.collect_cluster_shared_volumes.side_effect = PowerShellError("Command failed")

        inventory = collect_inventory(self.collector, logger=MagicMock())

        self.assertFalse(inventory.csv_info_available)
        self.assertEqual(inventory.virtual_disks[0].value("IsCSV"), CSV_INFO_UNAVAILABLE)
        self.assertEqual(inventory.csv_disks, [])

    def test_volume_failure_leaves_none(self):
        self.collector.collect_volumes.side_effect = PowerShellError("Command failed")

        inventory = collect_inventory(self.collector, include_volume_info=True, logger=MagicMock())

        self.assertIsNone(inventory.volumes)
        self.assertTrue(inventory.csv_info_available)

    def test_physical_disk_failure_propagates(self):
        self.collector.collect_physical_disks.side_effect = PowerShellError("Command failed")

        with self.assertRaises(PowerShellError):
            collect_inventory(self.collector, logger=MagicMock())


class TestStorageReportGenerator(unittest.TestCase):
    """Test storage report rendering"""

    def setUp(self):
        first = virtual("UserStorage_1")
        first.set("IsCSV", True)
        second = virtual("ClusterPerformanceHistory", size=TB // 2)
        second.set("IsCSV", False)
        self.inventory = StorageInventory(
            physical_disks=[
                physical("node2", "SSD", "S3"),
                physical("node1", "SSD", "S2", size="1105009185914.88"),
                physical("node1", "HDD", "S1", size=2 * TB, media="HDD"),
            ],
            virtual_disks=[first, second],
            cluster_shared_volumes=[],
        )

    def render(self, output_format="Table", include_volume_info=False):
        generator = StorageReportGenerator(
            self.inventory,
            "NODE1",
            "azl-cluster01",
            output_format=output_format,
            include_volume_info=include_volume_info,
            generated_at=GENERATED_AT,
        )
        stream = io.StringIO()
        generator.write(ReportWriter(stream))
        return stream.getvalue().split("\n")

    def test_invalid_format(self):
        with self.assertRaises(ValueError):
            StorageReportGenerator(self.inventory, "NODE1", "c", output_format="Json")

    def test_hosts_grouped_and_sorted(self):
        lines = self.render()

        node1 = lines.index("Host: node1 (2 disk(s))")
        node2 = lines.index("Host: node2 (1 disk(s))")
        self.assertLess(node1, node2)
        self.assertIn("Host Total (TB): 3.01", lines)
        self.assertIn("Host Total (TB): 1.00", lines)

    def test_table_keeps_two_decimals(self):
        lines = self.render()

        header = [line for line in lines if line.startswith("FriendlyName") and "SerialNumber" in line]
        self.assertTrue(header)
        self.assertTrue(any("2.00" in line and "HDD" in line for line in lines))

    def test_members_sorted_by_name_then_serial(self):
        lines = self.render(output_format="CSV")

        start = lines.index("Host: node1 (2 disk(s))")
        self.assertTrue(lines[start + 3].startswith("HDD,S1,"))
        self.assertTrue(lines[start + 4].startswith("SSD,S2,"))

    def test_list_format(self):
        lines = self.render(output_format="List")

        self.assertIn(f"{'SizeTB'.ljust(17)} : 1.00", lines)
        self.assertIn(f"{'FriendlyName'.ljust(17)} : HDD", lines)

    def test_model_summary(self):
        generator = StorageReportGenerator(self.inventory, "NODE1", "c", generated_at=GENERATED_AT)

        rows = generator.model_rows()

        self.assertEqual(
            rows,
            [
                {"FriendlyName": "HDD", "MediaType": "HDD", "Count": "1", "TotalSizeTB": "2.00"},
                {"FriendlyName": "SSD", "MediaType": "SSD", "Count": "2", "TotalSizeTB": "2.01"},
            ],
        )

    def test_csv_section_and_summary(self):
        lines = self.render(output_format="CSV")

        csv_start = lines.index("CSV DISKS")
        self.assertTrue(lines[csv_start + 3].startswith("UserStorage_1,Mirror,2,Fixed,Healthy,OK,1.00,2.00,True"))
        self.assertIn("Total Physical Disks: 3", lines)
        self.assertIn("Total Physical Capacity (TB): 4.01", lines)
        self.assertIn("Total Virtual Disks: 2", lines)
        self.assertIn("Total Virtual Disk Capacity (TB): 1.50", lines)
        self.assertIn("CSV Disks: 1", lines)

    def test_csv_info_unavailable(self):
        self.inventory.csv_info_available = False

        lines = self.render()

        csv_start = lines.index("CSV DISKS")
        self.assertEqual(lines[csv_start + 2], CSV_INFO_UNAVAILABLE)
        self.assertIn(f"CSV Disks: {CSV_INFO_UNAVAILABLE}", lines)

    def test_volume_section(self):
        self.assertNotIn("VOLUMES", self.render())
        self.assertIn("[VOLUME INFO UNAVAILABLE]", self.render(include_volume_info=True))

        self.inventory.volumes = [
            Record.from_dict({"FileSystemLabel": "Data", "DriveLetter": "D", "Size": TB, "SizeRemaining": TB // 4})
        ]
        lines = self.render(output_format="CSV", include_volume_info=True)
        self.assertIn("Data,D,[PROPERTY NOT FOUND],[PROPERTY NOT FOUND],1.00,0.25", lines)

    def test_empty_inventory(self):
        self.inventory = StorageInventory(cluster_shared_volumes=[])

        lines = self.render()

        self.assertIn("[NONE FOUND]", lines)
        self.assertIn("Total Physical Capacity (TB): 0.00", lines)


class TestExportCsv(unittest.TestCase):
    """Test CSV file export"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.export_path = Path(self.temp_dir.name) / "exports"
        disk = virtual("UserStorage_1")
        disk.set("IsCSV", True)
        self.inventory = StorageInventory(physical_disks=[physical("node1", "SSD", "S1")], virtual_disks=[disk])
        self.generator = StorageReportGenerator(self.inventory, "NODE1", "c", generated_at=GENERATED_AT)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_files_share_timestamp(self):
        written = export_csv(self.generator, self.export_path, timestamp=GENERATED_AT, logger=MagicMock())

        self.assertEqual(
            [path.name for path in written],
            ["PhysicalDisks-20260102-030405.csv", "VirtualDisks-20260102-030405.csv", "CSVDisks-20260102-030405.csv"],
        )
        physical_lines = written[0].read_text(encoding="utf-8").splitlines()
        self.assertTrue(physical_lines[0].startswith("Host,FriendlyName,SerialNumber"))
        self.assertTrue(physical_lines[1].startswith("node1,SSD,S1"))

    def test_csv_file_skipped_without_csv_disks(self):
        self.inventory.virtual_disks[0].set("IsCSV", False)

        written = export_csv(self.generator, self.export_path, timestamp=GENERATED_AT, logger=MagicMock())

        self.assertEqual(len(written), 2)
        self.assertFalse((self.export_path / "CSVDisks-20260102-030405.csv").exists())


class TestRunStorageReport(unittest.TestCase):
    """Test the storage report workflow"""

    @patch("azlocal_diagnostics.storage_report.get_host_name", return_value="NODE1")
    def test_prints_report(self, _mock_host):
        collector = MagicMock()
        collector.collect_physical_disks.return_value = [physical("node1", "SSD", "S1")]
        collector.collect_virtual_disks.return_value = [virtual("UserStorage_1")]
        collector.collect_cluster_shared_volumes.return_value = [csv_volume("UserStorage_1")]
        collector.get_cluster_name.return_value = "azl-cluster01"
        stream = io.StringIO()

        generator = run_storage_report(collector, output_format="List", stream=stream, logger=MagicMock())

        output = stream.getvalue()
        self.assertIn("AZURE LOCAL STORAGE INFORMATION REPORT", output)
        self.assertIn("Output Format: List", output)
        self.assertIn("CSV Disks: 1", output)
        self.assertEqual(len(generator.inventory.csv_disks), 1)


if __name__ == "__main__":
    unittest.main()
