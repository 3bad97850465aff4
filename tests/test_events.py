import unittest

import upnpdevice as upnp

from tests.const import TEST_PROPERTYSET_EVENT, last_change_event


class TestParseEvents(unittest.TestCase):
    def test_last_change(self):
        """
        Should decode every variable of a LastChange instance from its val attribute.
        """
        body = last_change_event(
            (0, {"TransportState": "PLAYING", "CurrentTrackDuration": "0:03:10"})
        )
        self.assertEqual(
            upnp.parse_events(body),
            [
                {
                    "InstanceID": 0,
                    "TransportState": "PLAYING",
                    "CurrentTrackDuration": "0:03:10",
                }
            ],
        )

    def test_last_change_instances(self):
        """
        Should yield one event per InstanceID, in document order.
        """
        body = last_change_event(
            (0, {"TransportState": "STOPPED"}),
            (1, {"TransportState": "PLAYING", "TransportPlaySpeed": "1"}),
        )
        events = upnp.parse_events(body)
        self.assertEqual(len(events), 2)
        self.assertEqual(events[0], {"InstanceID": 0, "TransportState": "STOPPED"})
        self.assertEqual(
            events[1],
            {"InstanceID": 1, "TransportState": "PLAYING", "TransportPlaySpeed": "1"},
        )

    def test_last_change_bytes(self):
        body = last_change_event((3, {"Volume": "12"})).encode("utf-8")
        self.assertEqual(upnp.parse_events(body), [{"InstanceID": 3, "Volume": "12"}])

    def test_last_change_escaped_metadata(self):
        """
        Values holding XML of their own should come through unescaped.
        """
        metadata = "&lt;DIDL-Lite&gt;&lt;item id=&quot;0&quot;/&gt;&lt;/DIDL-Lite&gt;"
        body = last_change_event((0, {"AVTransportURIMetaData": metadata}))
        events = upnp.parse_events(body)
        self.assertEqual(
            events[0]["AVTransportURIMetaData"], '<DIDL-Lite><item id="0"/></DIDL-Lite>'
        )

    def test_empty_last_change(self):
        body = last_change_event()
        self.assertEqual(upnp.parse_events(body), [])
        body = """
<e:propertyset xmlns:e="urn:schemas-upnp-org:event-1-0">
    <e:property><LastChange></LastChange></e:property>
</e:propertyset>"""
        self.assertEqual(upnp.parse_events(body), [])

    def test_property_set(self):
        """
        Should collect the variables of a plain property set into a single event.
        """
        self.assertEqual(
            upnp.parse_events(TEST_PROPERTYSET_EVENT),
            [
                {
                    "SinkProtocolInfo": "http-get:*:video/mp4:*,http-get:*:audio/mpeg:*",
                    "CurrentConnectionIDs": "0",
                }
            ],
        )

    def test_property_set_empty_value(self):
        body = """
<e:propertyset xmlns:e="urn:schemas-upnp-org:event-1-0">
    <e:property><CurrentConnectionIDs/></e:property>
</e:propertyset>"""
        self.assertEqual(upnp.parse_events(body), [{"CurrentConnectionIDs": ""}])

    def test_malformed_body(self):
        self.assertRaises(upnp.ParseError, upnp.parse_events, "<e:propertyset")
        self.assertRaises(upnp.ParseError, upnp.parse_events, b"")

    def test_malformed_last_change(self):
        body = """
<e:propertyset xmlns:e="urn:schemas-upnp-org:event-1-0">
    <e:property><LastChange>&lt;Event&gt;&lt;InstanceID</LastChange></e:property>
</e:propertyset>"""
        self.assertRaises(upnp.ParseError, upnp.parse_events, body)

    def test_bad_instance_id(self):
        self.assertRaises(
            upnp.ParseError,
            upnp.parse_events,
            last_change_event(("abc", {"TransportState": "PLAYING"})),
        )
