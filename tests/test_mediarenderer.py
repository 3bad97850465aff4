import asyncio

import mock
from lxml import etree

import upnpdevice as upnp
from upnpdevice import dlna

from tests.async_server import DeviceTestCase, xml_response
from tests.helpers import SimpleMock, async_test
from tests.const import (
    AVT_ID,
    AVT_TYPE,
    CM_TYPE,
    TEST_AVTRANSPORT_UPNPERROR,
    last_change_event,
    soap_response,
)


def action_args(req):
    action = etree.fromstring(req.body.encode("utf-8"))[0][0]
    return etree.QName(action).localname, dict((arg.tag, arg.text) for arg in action)


class MediaRendererTestCase(DeviceTestCase):
    def setUp(self):
        super(MediaRendererTestCase, self).setUp()
        self.renderer = upnp.MediaRenderer(self.client)

    def respond(self, path, action_name, service_type, **outputs):
        self.device.responses[("POST", path)] = xml_response(
            soap_response(action_name, service_type, **outputs)
        )

    def avtransport_calls(self):
        return [
            action_args(req)
            for req in self.device.requests_for("POST", "/AVTransport/control")
        ]


class TestPlayback(MediaRendererTestCase):
    @async_test
    async def test_get_volume(self):
        self.assertEqual(await self.renderer.async_get_volume(), 37)

    @async_test
    async def test_play(self):
        self.respond("/AVTransport/control", "Play", AVT_TYPE)
        await self.renderer.async_play()
        self.assertEqual(
            self.avtransport_calls(), [("Play", {"InstanceID": "0", "Speed": "1"})]
        )

    @async_test
    async def test_pause_stop(self):
        self.respond("/AVTransport/control", "Pause", AVT_TYPE)
        await self.renderer.async_pause()
        await self.renderer.async_stop()
        self.assertEqual(
            [name for name, _ in self.avtransport_calls()], ["Pause", "Stop"]
        )

    @async_test
    async def test_seek(self):
        self.respond("/AVTransport/control", "Seek", AVT_TYPE)
        await self.renderer.async_seek(3725)
        self.assertEqual(
            self.avtransport_calls(),
            [("Seek", {"InstanceID": "0", "Unit": "REL_TIME", "Target": "1:02:05"})],
        )

    @async_test
    async def test_get_position(self):
        self.respond(
            "/AVTransport/control",
            "GetPositionInfo",
            AVT_TYPE,
            Track=1,
            TrackDuration="0:04:00",
            RelTime="0:01:30",
        )
        self.assertEqual(await self.renderer.async_get_position(), 90)

    @async_test
    async def test_get_duration(self):
        self.respond(
            "/AVTransport/control",
            "GetMediaInfo",
            AVT_TYPE,
            NrTracks=1,
            MediaDuration="1:00:00",
            CurrentURI="http://media/movie.mp4",
        )
        self.assertEqual(await self.renderer.async_get_duration(), 3600)

    @async_test
    async def test_load(self):
        """
        Should hand the URL and its DIDL-Lite metadata to the renderer, falling
        back to instance 0 when PrepareForConnection isn't implemented.
        """
        self.respond("/AVTransport/control", "SetAVTransportURI", AVT_TYPE)
        await self.renderer.async_load(
            "http://media/movie.mp4",
            content_type="video/mp4",
            dlna_features=dlna.STREAMING_TIME_BASED_FLAGS,
            title="Movie",
            media_type="video",
        )
        (name, args), = self.avtransport_calls()
        self.assertEqual(name, "SetAVTransportURI")
        self.assertEqual(args["InstanceID"], "0")
        self.assertEqual(args["CurrentURI"], "http://media/movie.mp4")
        didl = etree.fromstring(args["CurrentURIMetaData"])
        res = didl.find("{%s}item/{%s}res" % (dlna.NS_DIDL, dlna.NS_DIDL))
        self.assertEqual(res.text, "http://media/movie.mp4")
        self.assertEqual(
            res.get("protocolInfo"),
            "http-get:*:video/mp4:%s" % dlna.STREAMING_TIME_BASED_FLAGS,
        )

    @async_test
    async def test_load_autoplay(self):
        self.respond("/AVTransport/control", "SetAVTransportURI", AVT_TYPE)
        await self.renderer.async_load("http://media/song.mp3", "audio/mpeg", autoplay=True)
        self.assertEqual(
            [name for name, _ in self.avtransport_calls()], ["SetAVTransportURI", "Play"]
        )

    @async_test
    async def test_load_next(self):
        self.respond("/AVTransport/control", "SetNextAVTransportURI", AVT_TYPE)
        await self.renderer.async_load_next("http://media/next.mp4")
        (name, args), = self.avtransport_calls()
        self.assertEqual(name, "SetNextAVTransportURI")
        self.assertEqual(args["NextURI"], "http://media/next.mp4")

    @async_test
    async def test_avtransport_error(self):
        """
        AVTransport faults should carry their AVTransport description.
        """
        self.device.responses[("POST", "/AVTransport/control")] = xml_response(
            TEST_AVTRANSPORT_UPNPERROR, status=500
        )
        with self.assertRaises(upnp.AVTransportError) as ctx:
            await self.renderer.async_play()
        self.assertEqual(ctx.exception.code, 701)
        self.assertEqual(ctx.exception.description, "Transition not available")
        self.assertIsInstance(ctx.exception, upnp.ActionFault)

    @async_test
    async def test_supported_protocols(self):
        self.respond(
            "/ConnectionManager/control",
            "GetProtocolInfo",
            CM_TYPE,
            Source="",
            Sink="http-get:*:video/mp4:DLNA.ORG_PN=AVC_MP4_BL_CIF15_AAC_520,"
            "http-get:*:audio/mpeg:*, ,rtsp-rtp-udp:*:audio/L16:*",
        )
        protocols = await self.renderer.async_get_supported_protocols()
        self.assertEqual(len(protocols), 3)
        self.assertEqual(
            protocols[0],
            dict(
                protocol="http-get",
                network="*",
                content_format="video/mp4",
                additional_info="DLNA.ORG_PN=AVC_MP4_BL_CIF15_AAC_520",
            ),
        )
        self.assertEqual(protocols[1]["content_format"], "audio/mpeg")
        self.assertEqual(protocols[2]["protocol"], "rtsp-rtp-udp")


class TestMediaEvents(MediaRendererTestCase):
    @async_test
    async def test_listener_refcount(self):
        """
        Should subscribe with the first media listener and unsubscribe with the last.
        """
        playing, paused = mock.Mock(), mock.Mock()
        await self.renderer.async_add_listener("playing", playing)
        await self.renderer.async_add_listener("paused", paused)
        self.assertEqual(len(self.device.requests_for("SUBSCRIBE")), 1)

        await self.renderer.async_remove_listener("playing", playing)
        self.assertEqual(self.device.requests_for("UNSUBSCRIBE"), [])
        await self.renderer.async_remove_listener("paused", paused)
        self.assertEqual(len(self.device.requests_for("UNSUBSCRIBE")), 1)
        self.assertEqual(dict(self.manager.subscriptions), {})

    @async_test
    async def test_other_listener(self):
        await self.renderer.async_add_listener("custom", mock.Mock())
        self.assertEqual(self.device.requests_for("SUBSCRIBE"), [])

    @async_test
    async def test_state_events(self):
        """
        The initial state event should only be reported as status; later
        changes map to playback events.
        """
        status, playing, stopped, speed = mock.Mock(), mock.Mock(), mock.Mock(), mock.Mock()
        await self.renderer.async_add_listener("status", status)
        await self.renderer.async_add_listener("playing", playing)
        await self.renderer.async_add_listener("stopped", stopped)
        await self.renderer.async_add_listener("speedChanged", speed)

        await self.notify(
            last_change_event((0, {"TransportState": "PLAYING"})), "uuid:avt-sub-1", seq=0
        )
        self.assertEqual(status.call_count, 1)
        self.assertFalse(playing.called)

        await self.notify(
            last_change_event((0, {"TransportState": "STOPPED"})), "uuid:avt-sub-1", seq=1
        )
        stopped.assert_called_once_with()

        await self.notify(
            last_change_event((0, {"TransportState": "PLAYING", "TransportPlaySpeed": "1/2"})),
            "uuid:avt-sub-1",
            seq=2,
        )
        playing.assert_called_once_with()
        speed.assert_called_once_with(0.5)
        self.assertEqual(status.call_count, 3)
        status.assert_called_with(
            {"InstanceID": 0, "TransportState": "PLAYING", "TransportPlaySpeed": "1/2"}
        )

    @async_test
    async def test_concurrent_subscribe_failure(self):
        """
        Listeners added while the SUBSCRIBE is in flight should all see it fail,
        and the next listener should subscribe again.
        """
        self.device.responses[("SUBSCRIBE", "/AVTransport/event")] = SimpleMock(status=503)
        results = await asyncio.gather(
            self.renderer.async_add_listener("playing", mock.Mock()),
            self.renderer.async_add_listener("paused", mock.Mock()),
            return_exceptions=True,
        )
        for result in results:
            self.assertIsInstance(result, upnp.SubscribeError)
        self.assertEqual(len(self.device.requests_for("SUBSCRIBE")), 1)
        self.assertEqual(self.renderer._refs, 0)
        self.assertEqual(self.renderer._listeners["playing"], [])
        self.assertEqual(self.renderer._listeners["paused"], [])

        self.device.reset()
        stopped = mock.Mock()
        await self.renderer.async_add_listener("stopped", stopped)
        self.assertEqual(self.renderer._refs, 1)
        self.assertEqual(len(self.device.requests_for("SUBSCRIBE")), 1)
        self.assertIn(AVT_ID, self.manager.subscriptions)

        await self.renderer.async_remove_listener("stopped", stopped)
        self.assertEqual(len(self.device.requests_for("UNSUBSCRIBE")), 1)
        self.assertEqual(dict(self.manager.subscriptions), {})

    @async_test
    async def test_concurrent_add(self):
        """
        Listeners added while the SUBSCRIBE is in flight should share it.
        """
        await asyncio.gather(
            self.renderer.async_add_listener("playing", mock.Mock()),
            self.renderer.async_add_listener("paused", mock.Mock()),
        )
        self.assertEqual(len(self.device.requests_for("SUBSCRIBE")), 1)
        self.assertEqual(self.renderer._refs, 2)

    @async_test
    async def test_subscribe_failure(self):
        self.device.responses.pop(("SUBSCRIBE", "/AVTransport/event"))
        listener = mock.Mock()
        with self.assertRaises(upnp.SubscribeError):
            await self.renderer.async_add_listener("playing", listener)
        self.assertEqual(self.renderer._refs, 0)
        self.assertEqual(self.renderer._listeners["playing"], [])
