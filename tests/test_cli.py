# ==============================================================================
# Tests for the CLI
# ==============================================================================
"""
Tests for the journeys CLI.

Help output is checked against the real app from journeys.app so the whole
command tree is wired up and Typer can introspect every signature. Query
commands run against a JSON lines file through --events-file, so no database
is needed.
"""

import json

import pytest
from typer.testing import CliRunner

from journeys.app import app

runner = CliRunner()

# ==============================================================================
# Helpers
# ==============================================================================


def _event(session_id: str, minute: int, pathname: str, **fields) -> dict:
    return {
        "site_id": 1,
        "session_id": session_id,
        "timestamp": f"2024-01-01T12:{minute:02d}:00Z",
        "pathname": pathname,
        **fields,
    }


def _json_body(output: str) -> dict:
    """Parse the JSON document printed after any log lines."""
    return json.loads(output[output.index("{") :])


@pytest.fixture()
def events_file(tmp_path):
    events = [
        _event("s1", 0, "/home", identified_user_id="alice"),
        _event("s1", 1, "/pricing", identified_user_id="alice"),
        _event("s1", 2, "/signup", identified_user_id="alice"),
        _event("s2", 5, "/home"),
        _event("s2", 6, "/pricing"),
        _event(
            "s2", 7, "/pricing", type="button_click", event_name="signup",
            properties={"color": "red"},
        ),
        _event("s3", 9, "/home"),
    ]
    path = tmp_path / "events.jsonl"
    path.write_text("\n".join(json.dumps(e) for e in events) + "\n")
    return path


@pytest.fixture()
def traits_file(tmp_path):
    path = tmp_path / "traits.json"
    path.write_text(json.dumps({"alice": {"plan": "pro"}}))
    return path


# ==============================================================================
# Help
# ==============================================================================


class TestRootHelp:
    """Tests for the root `journeys --help` output."""

    def test_exit_code(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0

    def test_lists_all_commands(self):
        result = runner.invoke(app, ["--help"])
        for cmd in ["journeys", "transitions", "step-details", "db", "config"]:
            assert cmd in result.output, f"Missing command: {cmd}"


class TestSubcommandHelp:
    """Every command introspects and documents its options."""

    @pytest.mark.parametrize(
        "args, expected",
        [
            (["journeys", "--help"], "--step-filter"),
            (["transitions", "--help"], "--source-step"),
            (["step-details", "--help"], "--step-index"),
            (["db", "--help"], "init"),
            (["db", "reset", "--help"], "--yes"),
            (["config", "--help"], "show"),
        ],
    )
    def test_help(self, args, expected):
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert expected in result.output


# ==============================================================================
# Query commands
# ==============================================================================


class TestJourneysCommand:
    """Tests for `journeys journeys`."""

    def test_json(self, events_file):
        result = runner.invoke(
            app, ["journeys", "1", "--events-file", str(events_file), "--steps", "2", "--json"]
        )
        assert result.exit_code == 0
        body = _json_body(result.stdout)
        assert body["journeys"][0]["path"] == ["/home", "/pricing"]
        assert body["journeys"][0]["count"] == 2

    def test_table(self, events_file):
        result = runner.invoke(app, ["journeys", "1", "--events-file", str(events_file)])
        assert result.exit_code == 0
        assert "/signup" in result.stdout

    def test_step_filter(self, events_file):
        result = runner.invoke(
            app,
            ["journeys", "1", "--events-file", str(events_file), "-f", "2=event:**", "--json"],
        )
        assert result.exit_code == 0
        paths = [j["path"] for j in _json_body(result.stdout)["journeys"]]
        assert paths == [["/home", "/pricing", "event:button_click:signup"]]

    def test_bad_step_filter_option(self, events_file):
        result = runner.invoke(
            app, ["journeys", "1", "--events-file", str(events_file), "-f", "/blog"]
        )
        assert result.exit_code != 0

    def test_invalid_request(self, events_file):
        result = runner.invoke(
            app, ["journeys", "1", "--events-file", str(events_file), "--steps", "11", "--json"]
        )
        assert result.exit_code == 1
        assert _json_body(result.stdout)["status"] == 400


class TestTransitionsCommand:
    """Tests for `journeys transitions`."""

    def test_json_with_traits(self, events_file, traits_file):
        result = runner.invoke(
            app,
            [
                "transitions", "1", "/home", "/pricing",
                "--events-file", str(events_file),
                "--traits-file", str(traits_file),
                "--json",
            ],
        )
        assert result.exit_code == 0
        body = _json_body(result.stdout)
        assert body["pagination"]["total"] == 2
        assert [s["session_id"] for s in body["data"]] == ["s2", "s1"]
        assert body["data"][1]["traits"] == {"plan": "pro"}

    def test_table(self, events_file):
        result = runner.invoke(
            app, ["transitions", "1", "/home", "/signup", "--events-file", str(events_file)]
        )
        assert result.exit_code == 0
        assert "page 1 of 1" in result.stdout


class TestStepDetailsCommand:
    """Tests for `journeys step-details`."""

    def test_json(self, events_file):
        result = runner.invoke(
            app,
            [
                "step-details", "1", "event:button_click:signup",
                "--events-file", str(events_file),
                "--json",
            ],
        )
        assert result.exit_code == 0
        body = _json_body(result.stdout)
        assert body["properties"] == {"color": [{"value": "red", "count": 1}]}
        assert body["events"][0]["session_id"] == "s2"
