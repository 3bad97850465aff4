"""
Decoding of GENA event notifications pushed by a device.

Most services send a plain property set, one element per changed variable:

    <e:propertyset xmlns:e="urn:schemas-upnp-org:event-1-0">
      <e:property><Volume>12</Volume></e:property>
    </e:propertyset>

AVTransport and RenderingControl instead send a single `LastChange` variable
whose text is a separately encoded `<Event>` document holding one `InstanceID`
block per virtual instance, each variable carried in a `val` attribute.
"""
from lxml import etree

from .errors import ParseError


def _parse(data, what):
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return etree.fromstring(data)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError("Invalid XML in %s: %s" % (what, exc))


def _localname(node):
    return etree.QName(node).localname


def _parse_last_change(text):
    events = []
    if not text or not text.strip():
        return events
    doc = _parse(text, "LastChange")
    for instance in doc.iterchildren("{*}InstanceID"):
        try:
            event = {"InstanceID": int(instance.get("val"))}
        except (TypeError, ValueError):
            raise ParseError("Invalid InstanceID %r" % instance.get("val"))
        for node in instance.iterchildren(tag=etree.Element):
            event[_localname(node)] = node.get("val")
        events.append(event)
    return events


def parse_events(body):
    """
    Decode a pushed event body into a list of {name: value} dicts, one per
    AVTransport/RenderingControl instance or a single one for a property set.
    Raises ParseError on malformed XML.
    """
    root = _parse(body, "event body")

    last_change = next(root.iter("{*}LastChange"), None)
    if last_change is not None:
        return _parse_last_change(last_change.text)

    event = {}
    for prop in root.iterchildren("{*}property"):
        for node in prop.iterchildren(tag=etree.Element):
            event[_localname(node)] = node.text or ""
    return [event]
