"""Tests for the terminal output layer.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- The login URL notifier and the waiting spinner
"""

from __future__ import annotations

import logging

import pytest

from weblogin.output import (
    OutputManager,
    SpinnerProgress,
    _should_disable_color,
    browser_notifier,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Color disabling
# ------------------------------------------------------------------ #


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd):
        OutputManager(no_color=True).print_data("tok_xyz")
        captured = capfd.readouterr()
        assert captured.out == "tok_xyz\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, method):
        getattr(OutputManager(no_color=True), method)("some message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "some message" in captured.err

    def test_error_prefix_in_no_color(self, capfd):
        OutputManager(no_color=True).error("boom")
        assert capfd.readouterr().err == "Error: boom\n"


class TestQuietMode:
    @pytest.mark.parametrize("method", ["info", "success", "suggest"])
    def test_quiet_suppresses(self, capfd, method):
        getattr(OutputManager(no_color=True, quiet=True), method)("hidden")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_does_not_suppress(self, capfd, method):
        getattr(OutputManager(no_color=True, quiet=True), method)("shown")
        assert "shown" in capfd.readouterr().err

    def test_quiet_does_not_suppress_stdout_data(self, capfd):
        OutputManager(no_color=True, quiet=True).print_data("tok")
        assert capfd.readouterr().out == "tok\n"


# ------------------------------------------------------------------ #
# Login URL notifier
# ------------------------------------------------------------------ #


class TestBrowserNotifier:
    def test_opens_and_prints_url(self, capfd):
        opened: list[str] = []

        def opener(url: str) -> bool:
            opened.append(url)
            return True

        notify = browser_notifier(OutputManager(no_color=True), opener=opener)
        notify("https://auth.test/cli/sess_1")

        captured = capfd.readouterr()
        assert opened == ["https://auth.test/cli/sess_1"]
        assert "Opening https://auth.test/cli/sess_1 ..." in captured.err
        assert "failed opening browser" not in captured.err
        assert captured.out == ""

    def test_warns_when_browser_fails(self, capfd):
        notify = browser_notifier(OutputManager(no_color=True), opener=lambda url: False)
        notify("https://auth.test/cli/sess_1")

        err = capfd.readouterr().err
        assert "failed opening browser. Copy the url (https://auth.test/cli/sess_1)" in err
        assert "Opening https://auth.test/cli/sess_1 ..." in err

    def test_no_browser(self, capfd):
        def opener(url: str) -> bool:
            raise AssertionError("browser must not be opened")

        notify = browser_notifier(OutputManager(no_color=True), open_browser=False, opener=opener)
        notify("https://auth.test/cli/sess_1")
        assert "https://auth.test/cli/sess_1" in capfd.readouterr().err

    def test_url_still_shown_in_quiet_mode_on_failure(self, capfd):
        notify = browser_notifier(OutputManager(no_color=True, quiet=True), opener=lambda url: False)
        notify("https://auth.test/cli/sess_1")
        assert "https://auth.test/cli/sess_1" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Spinner
# ------------------------------------------------------------------ #


class TestSpinnerProgress:
    def test_not_a_terminal_prints_final_message_only(self, capfd):
        progress = SpinnerProgress(OutputManager(no_color=True))
        progress.start("Waiting for session...")
        progress.stop("Waiting for session... Done")

        assert capfd.readouterr().err == "Waiting for session... Done\n"

    def test_stop_without_message(self, capfd):
        progress = SpinnerProgress(OutputManager(no_color=True))
        progress.start("Waiting for session...")
        progress.stop()
        assert capfd.readouterr().err == ""

    def test_quiet(self, capfd):
        progress = SpinnerProgress(OutputManager(no_color=True, quiet=True))
        progress.start("Waiting for session...")
        progress.stop("Waiting for session... Done")
        assert capfd.readouterr().err == ""


# ------------------------------------------------------------------ #
# Logging and global instance
# ------------------------------------------------------------------ #


class TestConfigureLogging:
    def test_default_level_is_warning(self):
        mgr = OutputManager(no_color=True)
        configure_logging(mgr)
        logger = logging.getLogger("weblogin")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert logger.handlers[0].console is mgr.stderr_console

    def test_verbose_manager_enables_debug(self):
        mgr = OutputManager(no_color=True, verbose=True)
        assert mgr.is_verbose is True

        configure_logging(mgr)
        assert logging.getLogger("weblogin").level == logging.DEBUG

    def test_debug_records_reach_stderr_when_verbose(self, capfd):
        configure_logging(OutputManager(no_color=True, verbose=True))
        logging.getLogger("weblogin.poller").debug("failed retrieving token (attempt 1)")

        captured = capfd.readouterr()
        assert "failed retrieving token" in captured.err
        assert captured.out == ""

    def test_repeated_calls_do_not_stack_handlers(self):
        mgr = OutputManager(no_color=True)
        configure_logging(mgr)
        configure_logging(mgr)
        assert len(logging.getLogger("weblogin").handlers) == 1


class TestGlobalInstance:
    def test_lazily_created(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr
