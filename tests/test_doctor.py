"""Tests for the diagnostic checks."""

import pytest

from httpsend import doctor


@pytest.fixture(autouse=True)
def offline(monkeypatch):
    """Keep the checks away from the real network."""
    monkeypatch.setattr(doctor, "check_network", lambda: (True, "[OK] Network connectivity"))


class TestChecks:
    """Test individual checks."""

    def test_dependency_present(self):
        assert doctor.check_dependency("yaml", "pyyaml") == (True, "[OK] pyyaml")

    def test_dependency_missing(self):
        assert doctor.check_dependency("httpsend_no_such_module") == (False, "[MISSING] httpsend_no_such_module")

    def test_tls_reports_protocols(self):
        results = doctor.check_tls()

        assert results[0][0] is True
        assert any("SSLv2Hello" in message for _, message in results)

    def test_download_dir_writable(self, tmp_path):
        target = tmp_path / "nested" / "downloads"

        ok, message = doctor.check_download_dir(target)

        assert ok is True
        assert target.is_dir()
        assert list(target.iterdir()) == []
        assert "writable" in message

    def test_download_dir_blocked(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        ok, message = doctor.check_download_dir(blocker / "downloads")

        assert ok is False
        assert message.startswith("[FAIL]")


class TestRunDoctor:
    """Test the full diagnostic run."""

    def test_plain_output(self, tmp_path, capsys):
        exit_code = doctor.run_doctor(download_dir=tmp_path, use_rich=False)

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Dependencies:" in out
        assert "TLS:" in out
        assert "[OK] pydantic" in out
        assert "ready to send requests" in out

    def test_rich_output(self, capsys):
        assert doctor.run_doctor() == 0
        assert "[OK] rich" in capsys.readouterr().out

    def test_missing_dependency_fails(self, monkeypatch, capsys):
        monkeypatch.setattr(doctor, "check_dependency", lambda mod, pkg=None: (False, f"[MISSING] {pkg}"))

        assert doctor.run_doctor(use_rich=False) == 1
        assert "not fully functional" in capsys.readouterr().out
