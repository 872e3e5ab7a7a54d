import logging

from tailauth.core.logging import get_logger, request_id_var

LOGGER_NAME = 'tail-authz.test'


def test_record_carries_request_id_and_context(caplog):
    token = request_id_var.set('abc12345')
    try:
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            get_logger(LOGGER_NAME).info('Role resolved', user_id='carol', role='MEMBER')
    finally:
        request_id_var.reset(token)
    assert caplog.messages == ['[abc12345] Role resolved user_id=carol role=MEMBER']


def test_error_includes_exception_summary(caplog):
    with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
        get_logger(LOGGER_NAME).error('Lookup failed', error=ValueError('bad kind'))
    assert caplog.messages == ['[-] Lookup failed error=ValueError: bad kind']


def test_records_below_level_are_dropped(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        get_logger(LOGGER_NAME).debug('noise')
    assert caplog.messages == []
