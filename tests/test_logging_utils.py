import logging

from hbridge.logging_utils import configure_console, setup_run_logger


def _handlers(logger, kind):
    return [h for h in logger.handlers if type(h) is kind]


def test_run_logger_writes_to_output_dir(tmp_path):
    logger, log_path = setup_run_logger(str(tmp_path / "out"), name="hbridge.test_run")
    logger.info("Processing H-bond bridge: demo...")
    for handler in logger.handlers:
        handler.flush()

    with open(log_path, "r", encoding="utf-8") as handle:
        text = handle.read()
    assert "HBridgeLab run started" in text
    assert "| INFO | Processing H-bond bridge: demo..." in text


def test_run_logger_switches_files_between_runs(tmp_path):
    name = "hbridge.test_switch"
    setup_run_logger(str(tmp_path / "first"), name=name)
    logger, log_path = setup_run_logger(str(tmp_path / "second"), name=name)
    files = _handlers(logger, logging.FileHandler)
    assert len(files) == 1
    assert files[0].baseFilename == log_path


def test_console_handler_is_not_duplicated():
    logger = configure_console(logging.INFO, name="hbridge.test_console")
    configure_console(logging.DEBUG, name="hbridge.test_console")
    streams = _handlers(logger, logging.StreamHandler)
    assert len(streams) == 1
    assert streams[0].level == logging.DEBUG
    assert logger.level == logging.DEBUG
