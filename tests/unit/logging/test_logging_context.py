import logging

from actionacl.logging.context import (
    TraceIdFilter,
    clear_current_trace_id,
    gen_trace_id,
    get_current_trace_id,
    set_current_trace_id,
)


def test_trace_id_set_get_clear_with_token():
    token = set_current_trace_id("abc")
    assert get_current_trace_id() == "abc"
    clear_current_trace_id(token)
    assert get_current_trace_id() is None


def test_trace_id_clear_without_token():
    set_current_trace_id("xyz")
    clear_current_trace_id()
    assert get_current_trace_id() is None


def test_filter_injects_trace_id(caplog):
    assert len(gen_trace_id()) >= 32
    logger = logging.getLogger("actionacl.test")
    f = TraceIdFilter()
    logger.addFilter(f)
    caplog.set_level(logging.INFO, logger="actionacl.test")
    set_current_trace_id("trace-1")
    try:
        logger.info("msg")
        assert caplog.records[-1].trace_id == "trace-1"
    finally:
        clear_current_trace_id()
        logger.removeFilter(f)
