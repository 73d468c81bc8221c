from tabreaper import logging_utils


def test_configure_logging_skips_file_logging_on_error(monkeypatch, tmp_path):
    def _raise(*_args, **_kwargs):
        raise PermissionError("blocked")

    monkeypatch.setattr(logging_utils.Path, "mkdir", _raise)

    # Should not raise even if the log directory cannot be created.
    logging_utils.configure_logging(log_dir=tmp_path / "logs")
    assert not (tmp_path / "logs").exists()


def test_component_is_bound(capsys):
    logging_utils.configure_logging(log_dir=None, level="INFO")
    log = logging_utils.get_logger("expiry.sweep")
    log.info("sweep finished")
    captured = capsys.readouterr()
    assert "expiry.sweep" in captured.err
    assert "sweep finished" in captured.err
