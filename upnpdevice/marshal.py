from uuid import UUID
from decimal import Decimal
from urllib.parse import urlparse

from dateutil.parser import parse as parse_date


def parse_bool(value):
    value = value.lower()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    raise ValueError("Unable to parse %r as a boolean" % value)


MARSHAL_FUNCTIONS = (
    (("ui1", "ui2", "ui4", "i1", "i2", "i4", "int"), int),
    (("r4", "r8", "number", "float"), float),
    (("fixed.14.4",), Decimal),
    (("char", "string", "bin.base64", "bin.hex"), lambda s: s),
    (("date",), lambda s: parse_date(s).date()),
    (("dateTime",), lambda s: parse_date(s).replace(tzinfo=None)),
    (("dateTime.tz",), parse_date),
    (("time",), lambda s: parse_date(s).time()),
    (("time.tz",), lambda s: parse_date(s).timetz()),
    (("boolean",), parse_bool),
    (("uri",), urlparse),
    (("uuid",), UUID),
)


def marshal_value(datatype, value):
    """
    Marshal a string value as sent over the wire into the Python type matching
    its UPnP `datatype`. Returns a (marshalled, value) tuple; values of unknown
    datatypes are returned untouched with `marshalled` set to False.
    """
    for types, func in MARSHAL_FUNCTIONS:
        if datatype in types:
            return True, func(value)
    return False, value
