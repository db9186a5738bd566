from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from staffeval.config import load_config
from staffeval.logging_utils import setup_logging


def test_setup_logging_is_idempotent(config) -> None:
    first = setup_logging(config)
    second = setup_logging(config)
    assert first is second
    assert first.propagate is False

    file_handlers = [h for h in first.handlers if isinstance(h, RotatingFileHandler)]
    stream_handlers = [h for h in first.handlers if type(h) is logging.StreamHandler]
    assert len(file_handlers) == 1
    assert len(stream_handlers) == 1


def test_module_loggers_write_to_file(config) -> None:
    setup_logging(config)
    logging.getLogger("staffeval.aggregator").warning("Fallback genutzt")
    for handler in logging.getLogger("staffeval").handlers:
        handler.flush()
    text = config.log_path.read_text(encoding="utf-8")
    assert "[WARNING] staffeval.aggregator: Fallback genutzt" in text


def test_module_levels_silence_fallback_noise(tmp_path) -> None:
    config = load_config(
        overrides={"log_path": str(tmp_path / "staffeval.log"), "log_levels": {"aggregator": "ERROR"}}
    )
    setup_logging(config)
    assert logging.getLogger("staffeval.aggregator").getEffectiveLevel() == logging.ERROR
    assert logging.getLogger("staffeval.store").getEffectiveLevel() == logging.INFO

    logging.getLogger("staffeval.aggregator").warning("Platzhalter")
    logging.getLogger("staffeval.aggregator").error("Bericht fehlgeschlagen")
    for handler in logging.getLogger("staffeval").handlers:
        handler.flush()
    text = config.log_path.read_text(encoding="utf-8")
    assert "Platzhalter" not in text
    assert "Bericht fehlgeschlagen" in text


def test_second_log_path_keeps_first_file(config, tmp_path) -> None:
    setup_logging(config)
    other = load_config(overrides={"log_path": str(tmp_path / "other.log")})
    logger = setup_logging(other)
    files = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(files) == 1
    assert files[0].baseFilename == str(config.log_path)
