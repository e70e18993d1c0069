"""
Unit tests for the adapter detail report
"""

import io
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

from azlocal_diagnostics.adapter_report import AdapterReportGenerator, run_adapter_report
from azlocal_diagnostics.models import AdapterDetail, Record
from azlocal_diagnostics.report_writer import ReportWriter

GENERATED_AT = datetime(2026, 1, 2, 3, 4, 5)

ADAPTERS = {
    "eth0": AdapterDetail(
        "eth0",
        description="Mellanox ConnectX-4",
        status="Up",
        mac_address="00-15-5D-01-02-03",
        driver_name="mlx5.sys",
        driver_version="2.90.25506.0",
        driver_date="/Date(1609459200000)/",
        ipv4_addresses=["10.0.0.5/24"],
    ),
    "eth1": AdapterDetail("eth1", description="Mellanox ConnectX-4", status="Disconnected"),
}


def lookup(name):
    return ADAPTERS.get(name) or AdapterDetail.not_found(name)


def intent(name, adapters, intent_type="Compute"):
    return Record.from_dict({"IntentName": name, "IntentType": intent_type, "NetAdapterNamesAsList": adapters})


class TestAdapterReportGenerator(unittest.TestCase):
    """Test adapter report rendering"""

    def render(self, intents, exclude_disconnected=False):
        generator = AdapterReportGenerator(
            intents,
            lookup,
            "NODE1",
            "azl-cluster01",
            exclude_disconnected=exclude_disconnected,
            generated_at=GENERATED_AT,
            logger=MagicMock(),
        )
        stream = io.StringIO()
        generator.write(ReportWriter(stream))
        return generator, stream.getvalue().split("\n")

    def test_adapter_names_trimmed(self):
        generator, lines = self.render([intent("compute", "eth0#eth1# #")])

        self.assertIn("Adapter Names: eth0, eth1", lines)
        self.assertIn("Adapter Count: 2", lines)
        self.assertEqual(generator.total_adapters, 2)

    def test_adapter_block(self):
        _, lines = self.render([intent("compute", "eth0")])

        self.assertIn("    Adapter: eth0", lines)
        self.assertIn("    Description: Mellanox ConnectX-4", lines)
        self.assertIn("    MAC Address: 00-15-5D-01-02-03", lines)
        self.assertIn("    Driver Date: 2021-01-01", lines)
        self.assertIn("    IPv4 Addresses: 10.0.0.5/24", lines)

    def test_adapter_without_address(self):
        _, lines = self.render([intent("compute", "eth1")])

        self.assertIn("    IPv4 Addresses: [NONE ASSIGNED]", lines)
        self.assertIn("    Driver Date: [NULL]", lines)

    def test_not_found_adapter(self):
        _, lines = self.render([intent("compute", "eth9")])

        self.assertIn("    Status: NotFound", lines)
        self.assertIn("    Driver Version: [ADAPTER NOT FOUND]", lines)

    def test_error_adapter(self):
        block = AdapterReportGenerator.render_adapter(AdapterDetail.error("eth0", "Access is denied"))

        self.assertIn("    Status: Error", block)
        self.assertIn("    Error: Access is denied", block)

    def test_empty_adapter_list(self):
        _, lines = self.render([intent("storage", "")])

        self.assertIn("Adapter Names: [EMPTY ADAPTER LIST]", lines)
        self.assertIn("Adapter Count: 0", lines)

    def test_missing_adapter_field(self):
        record = Record.from_dict({"IntentName": "storage"})
        _, lines = self.render([record])

        self.assertIn("Intent Type: [PROPERTY NOT FOUND]", lines)
        self.assertIn("Adapter Names: [EMPTY ADAPTER LIST]", lines)

    def test_summary_counts(self):
        generator, lines = self.render([intent("compute", "eth0#eth1"), intent("mgmt", ["eth9"])])

        self.assertIn("Total Intents Processed: 2", lines)
        self.assertIn("Total Adapters Processed: 3", lines)
        self.assertIn("Adapters with IPv4 Addresses: 1", lines)
        self.assertIn("Adapters without IPv4 Addresses: 2", lines)
        self.assertNotIn("Adapters Excluded (no IPv4 address): 0", lines)
        self.assertEqual(generator.adapters_excluded, 0)

    def test_exclude_disconnected(self):
        generator, lines = self.render([intent("compute", "eth0#eth1")], exclude_disconnected=True)

        self.assertIn("    Adapter: eth0", lines)
        self.assertNotIn("    Adapter: eth1", lines)
        self.assertFalse(any("eth1" in line for line in lines if not line.startswith("Adapter Names:")))
        self.assertIn("Exclude Disconnected Adapters: True", lines)
        self.assertIn("Total Adapters Processed: 2", lines)
        self.assertIn("Adapters Excluded (no IPv4 address): 1", lines)
        self.assertEqual(generator.adapters_excluded, 1)


class TestRunAdapterReport(unittest.TestCase):
    """Test the adapter report workflow"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.output = Path(self.temp_dir.name) / "IntentAdapterDetails.txt"
        self.collector = MagicMock()
        self.collector.lookup_adapter.side_effect = lookup
        self.collector.get_cluster_name.return_value = "[NOT CLUSTERED]"

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_no_intents(self):
        self.collector.collect_intents.return_value = []

        self.assertFalse(run_adapter_report(self.collector, self.output, logger=MagicMock()))
        self.assertFalse(self.output.exists())

    @patch("azlocal_diagnostics.adapter_report.get_host_name", return_value="NODE1")
    def test_writes_report(self, _mock_host):
        self.collector.collect_intents.return_value = [intent("compute", "eth0#eth1")]

        self.assertTrue(run_adapter_report(self.collector, self.output, logger=MagicMock()))

        content = self.output.read_text(encoding="utf-8")
        self.assertIn("NETWORK INTENT ADAPTER DETAILS REPORT", content)
        self.assertIn("Cluster: [NOT CLUSTERED]", content)
        self.assertIn("INTENT: compute", content)
        self.assertEqual(self.collector.lookup_adapter.call_count, 2)


if __name__ == "__main__":
    unittest.main()
