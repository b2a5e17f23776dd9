from __future__ import annotations

import json

from typer.testing import CliRunner

from podstat import cli
from podstat.core.errors import LayoutSelectionError, ScanAlreadyActiveError
from podstat.core.model import (
    BatteryValue,
    Component,
    DeviceStatus,
    FormFactor,
    LayoutProfile,
    ModelDescriptor,
    ScanOutcome,
    ScanState,
)
from podstat.core.decoder import PRIMARY_LAYOUT

PRO = ModelDescriptor(code=b"\x0e\x20", name="AirPods Pro", form_factor=FormFactor.IN_EAR)

STATUS = DeviceStatus(
    model=PRO,
    components=(
        Component("left", BatteryValue(100), False),
        Component("right", BatteryValue(95), True),
        Component("case", BatteryValue(), False),
    ),
    device_id="AA:BB:CC:DD:EE:FF",
    layout_id="proximity_pairing",
    observed_at=0.0,
)


class FakeService:
    outcome = ScanOutcome(state=ScanState.FOUND, status=STATUS, elapsed_s=0.4, reports_seen=3)

    def __init__(self, adapter=None) -> None:
        self.adapter = adapter
        self.load_warnings = ()
        self.runtime_warnings = ()
        self.profiles = {
            "proximity_pairing": LayoutProfile(
                id="proximity_pairing",
                name="Proximity pairing",
                priority=10,
                layout=PRIMARY_LAYOUT,
                models={PRO.code: PRO},
            )
        }

    def list_profiles(self):
        return list(self.profiles.values())

    def model_catalog(self, layout_id=None):
        return {"proximity_pairing": (PRO,)}

    def scan(self, *, timeout_s=None, interval_s=None, layout_id=None):
        self.calls = (timeout_s, interval_s, layout_id)
        return self.outcome

    def decode_payload(self, payload, *, manufacturer_id=0x004C, layout_id=None):
        return STATUS if manufacturer_id == 0x004C else None


runner = CliRunner()


def test_status_text_output(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["AirPods Pro", "Left: 100%", "Right: 95% (charging)"]


def test_status_json_output(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["status", "--json", "--timeout", "5", "--interval", "0.2"])
    assert result.exit_code == 0
    doc = json.loads(result.stdout)
    assert doc["model"] == "AirPods Pro"
    assert doc["form_factor"] == "in_ear"
    assert doc["battery"] == 95
    assert doc["components"][2] == {"name": "case", "battery": None, "charging": False}


def test_status_timeout_exits_nonzero(monkeypatch):
    class TimeoutService(FakeService):
        outcome = ScanOutcome(state=ScanState.TIMED_OUT, status=None, elapsed_s=3.0)

    monkeypatch.setattr(cli, "StatusService", TimeoutService)
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 1
    assert "Error: No supported device found" in result.stderr

    result = runner.invoke(cli.app, ["status", "--json"])
    assert result.exit_code == 1
    assert json.loads(result.stdout) == {"error": "No supported device found"}


def test_status_scan_error_is_clean(monkeypatch):
    class BusyService(FakeService):
        def scan(self, *, timeout_s=None, interval_s=None, layout_id=None):
            raise ScanAlreadyActiveError("A scan is already in progress on this adapter.")

    monkeypatch.setattr(cli, "StatusService", BusyService)
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 1
    assert "Error: A scan is already in progress" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_status_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["status", "--timeout", "0"])
    assert result.exit_code != 0


def test_models_command(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["models"])
    assert result.exit_code == 0
    assert "0e20: AirPods Pro (in_ear)" in result.stdout


def test_models_unknown_layout(monkeypatch):
    class NoLayoutService(FakeService):
        def model_catalog(self, layout_id=None):
            raise LayoutSelectionError(f"Unknown layout '{layout_id}'. Available: proximity_pairing")

    monkeypatch.setattr(cli, "StatusService", NoLayoutService)
    result = runner.invoke(cli.app, ["models", "--layout", "nope"])
    assert result.exit_code == 1
    assert "Unknown layout 'nope'" in result.stderr


def test_layouts_command(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["layouts"])
    assert result.exit_code == 0
    assert "proximity_pairing: Proximity pairing (priority 10, 1 codes)" in result.stdout


def test_decode_command(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["decode", "0719010e20"])
    assert result.exit_code == 0
    assert "Left: 100%" in result.stdout


def test_decode_command_unrecognised(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["decode", "0719", "--manufacturer", "0x0075", "--json"])
    assert result.exit_code == 1
    assert "error" in json.loads(result.stdout)


def test_decode_command_bad_manufacturer(monkeypatch):
    monkeypatch.setattr(cli, "StatusService", FakeService)
    result = runner.invoke(cli.app, ["decode", "0719", "--manufacturer", "apple"])
    assert result.exit_code == 1
    assert "Invalid manufacturer ID 'apple'" in result.stderr


def test_warnings_are_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self, adapter=None) -> None:
            super().__init__(adapter)
            self.runtime_warnings = ("Python package 'bleak' is not installed; BLE scanning will fail.",)

    monkeypatch.setattr(cli, "StatusService", WarnService)
    result = runner.invoke(cli.app, ["layouts"])
    assert result.exit_code == 0
    assert "Warning: Python package 'bleak' is not installed" in result.stderr


def test_real_decode_end_to_end():
    payload = "0719010e20" + "00a904" + "00" * 19
    result = runner.invoke(cli.app, ["decode", payload, "--json"])
    assert result.exit_code == 0
    doc = json.loads(result.stdout)
    assert [c["battery"] for c in doc["components"]] == [100, 95, 45]
