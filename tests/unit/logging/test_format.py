import logging

from stackpilot.logging.format import AddFormattedAttributes, compress_logger_name


def test_compress_logger_name():
    assert compress_logger_name("log", 1) == "l"
    assert compress_logger_name("log", 2) == "lo"
    assert compress_logger_name("log", 3) == "log"
    assert compress_logger_name("log", 5) == "log"
    assert compress_logger_name("stackpilot.cloudformation.events", 1) == "s"
    assert compress_logger_name("stackpilot.cloudformation.events", 5) == "s.c.e"
    assert compress_logger_name("stackpilot.cloudformation.events", 9) == "s.c.event"
    assert compress_logger_name("stackpilot.cloudformation.events", 10) == "s.c.events"
    assert compress_logger_name("stackpilot.cloudformation.events", 22) == "s.c.events"
    assert (
        compress_logger_name("stackpilot.cloudformation.events", 23)
        == "s.cloudformation.events"
    )
    assert (
        compress_logger_name("stackpilot.cloudformation.events", 32)
        == "stackpilot.cloudformation.events"
    )


def test_formatted_attributes():
    record = logging.LogRecord(
        "stackpilot.cloudformation.manager", logging.WARNING, __file__, 1, "msg", None, None
    )

    assert AddFormattedAttributes(max_name_len=20).filter(record)

    assert record.sp_level == "WARN"
    assert record.sp_name == "s.c.manager"


def test_level_names_are_short():
    fatal = logging.LogRecord("stackpilot", logging.CRITICAL, __file__, 1, "msg", None, None)
    info = logging.LogRecord("stackpilot", logging.INFO, __file__, 1, "msg", None, None)
    attributes = AddFormattedAttributes()

    attributes.filter(fatal)
    attributes.filter(info)

    assert fatal.sp_level == "FATAL"
    assert info.sp_level == "INFO"
    assert info.sp_name == "stackpilot"
