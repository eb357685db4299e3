"""Tests for the subcommand dispatcher."""

import pytest


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self, capsys):
        from gridcompose.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0  # should error without subcommand

    def test_render_subcommand_exists(self):
        """Verify render subcommand is registered (will fail on missing args)."""
        from gridcompose.main import main

        with pytest.raises(SystemExit):
            main(["render"])

    def test_list_subcommand_runs(self, capsys):
        from gridcompose.main import main

        main(["list"])
        assert "grid_4x6_2x2" in capsys.readouterr().out

    def test_validate_subcommand_runs(self, capsys):
        from gridcompose.main import main

        main(["validate"])
        assert "Catalog valid: 4 templates" in capsys.readouterr().out

    def test_invalid_subcommand_errors(self, capsys):
        from gridcompose.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0
