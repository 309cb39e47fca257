from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.relay",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='Fermenter "%s": %.2f C',
        args=("Conical", 19.5),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_keys_are_appended() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s | %(message)s")

    line = formatter.format(_record(device_id=7, device="Conical", verdict=None))

    assert line == 'INFO | Fermenter "Conical": 19.50 C | device_id=7 device=Conical'


def test_plain_message_without_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record()) == 'Fermenter "Conical": 19.50 C'
