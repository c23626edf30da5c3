from unittest.mock import AsyncMock, patch

import click.testing
import pytest

from layosc.cli import cli
from layosc.system import BridgeConfig
from layosc.types import EnvelopeError
from layosc.util import DEFAULT_LOGLEVEL


@pytest.fixture
def cli_runner():
    return click.testing.CliRunner()


@pytest.fixture(autouse=True)
def no_user_config(tmp_path):
    with patch("layosc.system.config.user_config_path") as mock_path:
        mock_path.return_value = tmp_path / "missing.ini"
        yield


class TestServerCLI:
    @patch("layosc.cli.base.start_server", new_callable=AsyncMock)
    def test_default_values(self, mock_start, cli_runner):
        result = cli_runner.invoke(cli, ["server", "127.0.0.1:7000", "127.0.0.1:7001"])
        assert result.exit_code == 0, result.output
        mock_start.assert_awaited_once()
        config = mock_start.call_args.args[0]
        assert config == BridgeConfig(tx_addr="127.0.0.1:7000", rx_addr="127.0.0.1:7001")
        assert mock_start.call_args.kwargs == {
            "log_to_file": True,
            "log_to_stdout": True,
            "log_path": "",
            "clear_prev_log": True,
            "log_level": DEFAULT_LOGLEVEL,
        }

    @patch("layosc.cli.base.start_server", new_callable=AsyncMock)
    def test_all_arguments(self, mock_start, cli_runner):
        result = cli_runner.invoke(
            cli,
            [
                "server",
                "127.0.0.1:7000",
                "127.0.0.1:7001",
                "--config",
                "unseeded",
                "--n-qubits",
                "4",
                "--seed",
                "9",
                "--send-bind",
                "127.0.0.1:7002",
                "--queue-len",
                "8",
                "--qubit-map",
                "row_major:2",
                "--no-log-to-file",
                "--no-log-to-stdout",
                "--log-path",
                "/tmp/test.log",
                "--log-level",
                "DEBUG",
            ],
        )
        assert result.exit_code == 0, result.output
        config = mock_start.call_args.args[0]
        assert config.name == "unseeded"
        assert config.n_qubits == 4
        assert config.seed == 9
        assert config.send_bind == ("127.0.0.1", 7002)
        assert config.queue_len == 8
        assert config.qubit_map == "row_major:2"
        assert mock_start.call_args.kwargs["log_level"] == "DEBUG"
        assert mock_start.call_args.kwargs["log_to_file"] is False

    @patch("layosc.cli.base.start_server", new_callable=AsyncMock)
    def test_config_seed_kept_without_override(self, mock_start, cli_runner):
        result = cli_runner.invoke(
            cli, ["server", "127.0.0.1:7000", "127.0.0.1:7001", "-n", "unseeded"]
        )
        assert result.exit_code == 0, result.output
        assert mock_start.call_args.args[0].seed is None

    @pytest.mark.parametrize(
        "extra",
        [["--config", "nope"], ["--n-qubits", "0"], ["--qubit-map", "z"]],
    )
    @patch("layosc.cli.base.start_server", new_callable=AsyncMock)
    def test_bad_parameters(self, mock_start, extra, cli_runner):
        result = cli_runner.invoke(
            cli, ["server", "127.0.0.1:7000", "127.0.0.1:7001", *extra]
        )
        assert result.exit_code != 0
        mock_start.assert_not_called()

    def test_bad_address(self, cli_runner):
        result = cli_runner.invoke(cli, ["server", "nowhere", "127.0.0.1:7001"])
        assert result.exit_code != 0

    @patch("layosc.cli.base.start_server", new_callable=AsyncMock)
    def test_fatal_error_exit_code(self, mock_start, cli_runner):
        mock_start.side_effect = EnvelopeError("Received empty bundle.")
        result = cli_runner.invoke(cli, ["server", "127.0.0.1:7000", "127.0.0.1:7001"])
        assert result.exit_code == 1
        assert "Received empty bundle." in result.output


class TestServersCLI:
    @patch("layosc.cli.base.list_running_servers")
    def test_list_no_servers(self, mock_list, cli_runner):
        mock_list.return_value = []
        result = cli_runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "No servers found" in result.output

    @patch("layosc.cli.base.list_running_servers")
    def test_list_servers(self, mock_list, cli_runner):
        mock_list.return_value = [
            {
                "pid": 4242,
                "timestamp": "2024-01-01_12:00:00",
                "tx": "127.0.0.1:8860",
                "rx": "127.0.0.1:8861",
                "running": True,
            }
        ]
        result = cli_runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "PID: 4242 (RUNNING)" in result.output
        assert "rx: 127.0.0.1:8861 -> tx: 127.0.0.1:8860" in result.output

    @patch("layosc.cli.base.kill_layosc_servers")
    def test_kill(self, mock_kill, cli_runner):
        mock_kill.return_value = 2
        result = cli_runner.invoke(cli, ["kill"])
        assert result.exit_code == 0
        assert "Killed 2 layosc server(s)" in result.output

    @patch("layosc.cli.base.kill_layosc_servers")
    def test_kill_none(self, mock_kill, cli_runner):
        mock_kill.return_value = 0
        result = cli_runner.invoke(cli, ["kill"])
        assert "No running layosc servers found" in result.output


class TestMiscCLI:
    def test_configs(self, cli_runner):
        result = cli_runner.invoke(cli, ["configs"])
        assert result.exit_code == 0
        assert "default: rx 127.0.0.1:8861 -> tx 127.0.0.1:8860" in result.output
        assert "unseeded" in result.output

    def test_configs_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(cli, ["configs", "--path", str(tmp_path / "x.ini")])
        assert result.exit_code == 1

    def test_tree(self, cli_runner):
        result = cli_runner.invoke(cli, ["--tree"])
        assert result.exit_code == 0
        for name in ("configs", "kill", "list", "server"):
            assert f"└── {name}" in result.output
