"""Tests for the command-line entry point."""

from unittest.mock import patch

import pytest

from gcsindex.cli import build_config, main, parse_args


class TestBuildConfig:
    """Tests for argument parsing and config overrides."""

    def test_positional_mounts(self):
        config = build_config(parse_args(["/:root-bucket:", "/docs/:docs-bucket:site/"]))
        assert [(m.path, m.bucket, m.prefix) for m in config.mounts] == [
            ("/", "root-bucket", ""),
            ("/docs/", "docs-bucket", "site/"),
        ]

    def test_overrides(self):
        args = parse_args(
            [
                "/:root-bucket:",
                "--host",
                "127.0.0.1",
                "--port",
                "9000",
                "--log-format",
                "json",
                "--no-json",
                "--no-readme",
                "--skip-readme",
                "--version-sort",
                "--shutdown-timeout",
                "3",
            ]
        )
        config = build_config(args)
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000
        assert config.server.log_format == "json"
        assert config.server.shutdown_timeout == 3
        assert config.index.json_listing is False
        assert config.index.readme is False
        assert config.index.skip_readme is True
        assert config.index.version_sort is True

    def test_verbose_sets_debug(self):
        config = build_config(parse_args(["-v", "/:root-bucket:"]))
        assert config.server.log_level == "DEBUG"

    def test_config_file_plus_mounts(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("mounts:\n  - path: /\n    bucket: root-bucket\n")
        config = build_config(parse_args(["--config", str(path), "/extra/:extra-bucket:"]))
        assert [m.path for m in config.mounts] == ["/", "/extra/"]


class TestMain:
    """Tests for main()."""

    def test_starts_uvicorn_on_host_port(self):
        with patch("gcsindex.cli.uvicorn.run") as run, patch("gcsindex.cli.configure_logging"):
            main(["/:root-bucket:", "--port", "9100"])
        run.assert_called_once()
        kwargs = run.call_args.kwargs
        assert kwargs["port"] == 9100
        assert kwargs["timeout_graceful_shutdown"] == 10
        assert "uds" not in kwargs

    def test_starts_uvicorn_on_socket(self):
        with patch("gcsindex.cli.uvicorn.run") as run, patch("gcsindex.cli.configure_logging"):
            main(["/:root-bucket:", "--socket", "/tmp/gcs-index.sock"])
        kwargs = run.call_args.kwargs
        assert kwargs["uds"] == "/tmp/gcs-index.sock"
        assert "port" not in kwargs

    def test_invalid_mount_exits_2(self):
        with patch("gcsindex.cli.uvicorn.run") as run:
            with pytest.raises(SystemExit) as exc_info:
                main(["/docs/"])
        assert exc_info.value.code == 2
        run.assert_not_called()

    def test_no_mounts_exits_1(self):
        with patch("gcsindex.cli.uvicorn.run") as run:
            with pytest.raises(SystemExit) as exc_info:
                main([])
        assert exc_info.value.code == 1
        run.assert_not_called()

    def test_missing_config_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "nope.yaml"), "/:root-bucket:"])
        assert exc_info.value.code == 1
