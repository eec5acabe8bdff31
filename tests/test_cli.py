"""Tests for specctra_tools CLI commands."""

import json
from pathlib import Path

import pytest

from specctra_tools.cli import main


class TestCLIMain:
    """Tests for the main CLI dispatcher."""

    def test_no_command_shows_help(self, capsys):
        """No command prints help."""
        assert main([]) == 0
        captured = capsys.readouterr()
        assert "Specctra DSN/SES to circuit JSON toolkit" in captured.out

    def test_version_flag(self, capsys):
        """--version prints the version and exits."""
        from specctra_tools import __version__

        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_unknown_command(self):
        """argparse rejects unknown commands."""
        with pytest.raises(SystemExit) as exc_info:
            main(["route"])
        assert exc_info.value.code == 2


class TestConvertCommand:
    """Tests for the convert command."""

    def test_requires_a_file(self, isolated_config, capsys):
        """Neither --dsn nor --ses is an error."""
        assert main(["convert"]) == 1
        assert "--dsn or --ses" in capsys.readouterr().err

    def test_json_to_stdout(self, isolated_config, minimal_dsn, capsys):
        """JSON goes to stdout without -o."""
        assert main(["convert", "--dsn", str(minimal_dsn)]) == 0
        elements = json.loads(capsys.readouterr().out)
        assert elements[0]["type"] == "pcb_board"

    def test_output_file(self, isolated_config, minimal_dsn, minimal_ses, capsys):
        """-o writes the combined board to a file."""
        output = isolated_config / "board.circuit.json"
        result = main(
            ["convert", "--dsn", str(minimal_dsn), "--ses", str(minimal_ses), "-o", str(output)]
        )
        assert result == 0
        elements = json.loads(output.read_text())
        traces = [e for e in elements if e["type"] == "pcb_trace"]
        assert len(traces) == 2
        assert all(t["route"][0].get("start_pcb_port_id") for t in traces)
        assert "Wrote" in capsys.readouterr().err

    def test_quiet_output_file(self, isolated_config, minimal_ses, capsys):
        """-q suppresses the status line."""
        output = isolated_config / "out.json"
        assert main(["convert", "--ses", str(minimal_ses), "-o", str(output), "-q"]) == 0
        assert "Wrote" not in capsys.readouterr().err

    def test_summary(self, isolated_config, minimal_dsn, minimal_ses, capsys):
        """The summary format prints counts instead of JSON."""
        result = main(
            ["convert", "--dsn", str(minimal_dsn), "--ses", str(minimal_ses), "--format", "summary"]
        )
        assert result == 0
        out = capsys.readouterr().out
        assert "Circuit Elements" in out
        assert "pcb_trace" in out
        assert "Traces attached to pads: 2" in out

    def test_format_from_config(self, isolated_config, minimal_dsn, capsys):
        """The default format comes from the config file."""
        (isolated_config / ".specctra-tools.toml").write_text('[defaults]\nformat = "summary"\n')
        assert main(["convert", "--dsn", str(minimal_dsn)]) == 0
        assert "Circuit Elements" in capsys.readouterr().out

    def test_missing_file(self, isolated_config, capsys):
        """Unreadable input returns an error code."""
        assert main(["convert", "--dsn", "nonexistent.dsn"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_parse_error(self, isolated_config, capsys):
        """Broken files are reported, not raised."""
        broken = isolated_config / "broken.dsn"
        broken.write_text("(pcb broken (structure")
        assert main(["convert", "--dsn", str(broken)]) == 1
        assert "Error" in capsys.readouterr().err

    def test_strict(self, isolated_config, minimal_dsn_text, capsys):
        """--strict turns unresolved references into errors."""
        dsn = isolated_config / "unresolved.dsn"
        dsn.write_text(minimal_dsn_text.replace("(pins R1-2 R2-1)", "(pins R1-2 R2-1 U9-1)"))
        assert main(["convert", "--dsn", str(dsn)]) == 0
        capsys.readouterr()
        assert main(["convert", "--dsn", str(dsn), "--strict"]) == 1
        assert "U9-1" in capsys.readouterr().err


class TestStitchReportCommand:
    """Tests for the stitch-report command."""

    def test_json(self, isolated_config, minimal_ses, capsys):
        """JSON lists one summary per net."""
        assert main(["stitch-report", str(minimal_ses), "--format", "json"]) == 0
        summaries = {s["net"]: s for s in json.loads(capsys.readouterr().out)}
        assert summaries["SIG"]["segments"] == 2
        assert summaries["SIG"]["chains"] == 1
        assert summaries["SIG"]["total_length_mm"] == pytest.approx(8.5)
        assert summaries["GND"]["vias"] == 2

    def test_net_filter_with_design(self, isolated_config, minimal_dsn, minimal_ses, capsys):
        """--net limits the report; --dsn enables hanging counts."""
        argv = ["stitch-report", str(minimal_ses), "--dsn", str(minimal_dsn), "--net", "GND", "-f", "json"]
        assert main(argv) == 0
        summaries = json.loads(capsys.readouterr().out)
        assert [s["net"] for s in summaries] == ["GND"]
        assert summaries[0]["hanging"] == 0
        assert summaries[0]["total_length_mm"] == pytest.approx(17.5)

    def test_table(self, isolated_config, minimal_ses, capsys):
        """The table names the file and the nets."""
        assert main(["stitch-report", str(minimal_ses)]) == 0
        out = capsys.readouterr().out
        assert "Stitch Report" in out
        assert "GND" in out

    def test_build_stitch_report(self, minimal_ses):
        """The report builder works without the CLI."""
        from specctra_tools.cli.stitch_report_cmd import build_stitch_report

        summaries = build_stitch_report(str(minimal_ses), nets=["SIG"])
        assert len(summaries) == 1
        assert summaries[0].to_dict()["chain_lengths_mm"] == [8.5]

    def test_table_units(self, isolated_config, minimal_ses, capsys):
        """Lengths print in mm by default and in mils with --units."""
        assert main(["stitch-report", str(minimal_ses), "--net", "SIG"]) == 0
        assert "8.500 mm" in capsys.readouterr().out

        assert main(["stitch-report", str(minimal_ses), "--net", "SIG", "--units", "mils"]) == 0
        assert "334.6 mils" in capsys.readouterr().out

    def test_table_units_from_config(self, isolated_config, minimal_ses, capsys):
        """The table units come from [defaults] when not given."""
        (isolated_config / ".specctra-tools.toml").write_text('[defaults]\nunits = "mils"\n')
        assert main(["stitch-report", str(minimal_ses), "--net", "SIG"]) == 0
        assert "334.6 mils" in capsys.readouterr().out

    def test_unknown_units_in_config(self, isolated_config, minimal_ses, capsys):
        """Unsupported units in the config are an error."""
        (isolated_config / ".specctra-tools.toml").write_text('[defaults]\nunits = "furlongs"\n')
        assert main(["stitch-report", str(minimal_ses)]) == 1
        assert "defaults.units must be one of: mm, mils" in capsys.readouterr().err

    def test_pad_preference_follows_options(self, minimal_dsn, minimal_ses, monkeypatch):
        """Pads steer branch choice only when prefer_port_branches is set."""
        from specctra_tools.cli import stitch_report_cmd
        from specctra_tools.convert import ConvertOptions

        terminals = []
        real_stitch_net = stitch_report_cmd.stitch_net

        def recording_stitch_net(*args, **kwargs):
            terminals.append(kwargs["terminal"])
            return real_stitch_net(*args, **kwargs)

        monkeypatch.setattr(stitch_report_cmd, "stitch_net", recording_stitch_net)

        options = ConvertOptions(prefer_port_branches=False)
        stitch_report_cmd.build_stitch_report(str(minimal_ses), str(minimal_dsn), options)
        assert terminals and all(t is None for t in terminals)

        terminals.clear()
        stitch_report_cmd.build_stitch_report(str(minimal_ses), str(minimal_dsn), ConvertOptions())
        assert terminals and all(t is not None for t in terminals)


class TestConfigCommand:
    """Tests for the config command."""

    def test_init_creates_template(self, isolated_config, capsys):
        """--init writes a template in the current directory."""
        assert main(["config", "--init"]) == 0
        target = Path(isolated_config) / ".specctra-tools.toml"
        assert target.exists()
        assert "[stitch]" in target.read_text()
        assert "Wrote starter settings to" in capsys.readouterr().out

    def test_init_refuses_overwrite(self, isolated_config, capsys):
        """An existing file is left alone."""
        (isolated_config / ".specctra-tools.toml").write_text("# mine\n")
        assert main(["config", "--init"]) == 1
        assert (isolated_config / ".specctra-tools.toml").read_text() == "# mine\n"
        assert "exists, not overwriting" in capsys.readouterr().err

    def test_show(self, isolated_config, capsys):
        """--show prints every section with sources."""
        (isolated_config / ".specctra-tools.toml").write_text("[stitch]\ntolerance = 0.002\n")
        assert main(["config", "--show"]) == 0
        out = capsys.readouterr().out
        assert "[convert]" in out
        assert "tolerance = 0.002  # .specctra-tools.toml" in out
        assert "strict = false  # default" in out
        assert "# max_iterations is unset  (default)" in out

    def test_show_invalid_config(self, isolated_config, capsys):
        """Invalid values are reported with an error code."""
        (isolated_config / ".specctra-tools.toml").write_text("[stitch]\ntolerance = -1\n")
        assert main(["config", "--show"]) == 1
        assert "stitch.tolerance must be positive" in capsys.readouterr().err

    def test_paths(self, isolated_config, capsys):
        """--paths lists where config is looked for."""
        assert main(["config", "--paths"]) == 0
        out = capsys.readouterr().out
        assert "Project settings, nearest of: .specctra-tools.toml or specctra-tools.toml" in out
        assert "Tables read: [defaults], [stitch], [convert]" in out

    def test_paths_reports_found_project_file(self, isolated_config, capsys):
        """--paths names the project file once it exists."""
        (isolated_config / "specctra-tools.toml").write_text("")
        assert main(["config", "--paths"]) == 0
        assert f"-> {isolated_config.resolve() / 'specctra-tools.toml'}" in capsys.readouterr().out
