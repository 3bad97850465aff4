"""
MediaRenderer facade: maps AVTransport, RenderingControl and ConnectionManager
actions onto playback verbs and AVTransport events onto playback state
notifications.
"""
import asyncio

from .util import _getLogger, format_time, parse_time
from .errors import ActionFault, NoSuchAction, UPNPError
from .marshal import marshal_value
from . import dlna

MEDIA_EVENTS = (
    "status",
    "loading",
    "playing",
    "paused",
    "stopped",
    "nomedia",
    "speedChanged",
)

TRANSPORT_STATES = {
    "TRANSITIONING": "loading",
    "PLAYING": "playing",
    "PAUSED_PLAYBACK": "paused",
    "STOPPED": "stopped",
    "NO_MEDIA_PRESENT": "nomedia",
}

AVTRANSPORT_ERRORS = {
    701: "Transition not available",
    702: "No contents",
    703: "Read error",
    704: "Format not supported for playback",
    705: "Transport is locked",
    706: "Write error",
    707: "Media is protected or not writeable",
    708: "Format not supported for recording",
    709: "Media is full",
    710: "Seek mode not supported",
    711: "Illegal seek target",
    712: "Play mode not supported",
    713: "Record quality not supported",
    714: "Illegal MIME-Type",
    715: "Content 'BUSY'",
    716: "Resource not found",
    717: "Play speed not supported",
    718: "Invalid InstanceID",
}


class AVTransportError(ActionFault):
    """
    A fault raised by the AVTransport service, described with the AVTransport
    specific meaning of its code when there is one.
    """

    def __init__(self, code, description, http_status):
        description = AVTRANSPORT_ERRORS.get(code, description)
        super(AVTransportError, self).__init__(code, description, http_status)


class MediaRenderer(object):
    """
    Playback control of a MediaRenderer device through a `DeviceClient`.

    Registering a listener for one of `MEDIA_EVENTS` subscribes to the
    AVTransport events of the device; removing the last one unsubscribes.
    """

    def __init__(self, client, instance_id=0):
        self.client = client
        self.instance_id = instance_id
        self._listeners = {}
        self._refs = 0
        self._subscription = None
        self._received_state = False
        self._log = _getLogger("MediaRenderer")

    def __repr__(self):
        return "<MediaRenderer '%s'>" % (self.client.location)

    async def async_add_listener(self, event_name, listener):
        self._listeners.setdefault(event_name, []).append(listener)
        if event_name not in MEDIA_EVENTS:
            return
        self._refs += 1
        if self._subscription is None:
            self._received_state = False
            self._subscription = asyncio.ensure_future(
                self.client.async_subscribe("AVTransport", self._on_status)
            )
            self._subscription.add_done_callback(self._subscription_done)
        # Listeners added while the SUBSCRIBE is in flight share its outcome.
        subscription = self._subscription
        try:
            await asyncio.shield(subscription)
        except Exception:
            listeners = self._listeners[event_name]
            if listener in listeners:
                listeners.remove(listener)
                self._refs -= 1
            raise

    def _subscription_done(self, future):
        if future.cancelled() or future.exception() is not None:
            if self._subscription is future:
                self._subscription = None

    async def async_remove_listener(self, event_name, listener):
        listeners = self._listeners.get(event_name, [])
        if listener not in listeners:
            return
        listeners.remove(listener)
        if event_name not in MEDIA_EVENTS:
            return
        self._refs -= 1
        if self._refs or self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        try:
            await asyncio.shield(subscription)
        except UPNPError:
            return
        if self._subscription is not None:
            # A listener came back meanwhile and joined the same record.
            return
        await self.client.async_unsubscribe("AVTransport", self._on_status)

    def emit(self, event_name, *args):
        for listener in list(self._listeners.get(event_name, [])):
            listener(*args)

    def _on_status(self, event):
        self.emit("status", event)

        if not self._received_state:
            # The first event carries the full service state, not a change.
            self._received_state = True
            return

        state = event.get("TransportState")
        if state in TRANSPORT_STATES:
            self.emit(TRANSPORT_STATES[state])

        if "TransportPlaySpeed" in event:
            try:
                speed = float(event["TransportPlaySpeed"])
            except ValueError:
                # Fractional speeds are reported as "1/2".
                num, _, den = event["TransportPlaySpeed"].partition("/")
                speed = float(num) / float(den)
            self.emit("speedChanged", speed)

    async def async_call_avtransport(self, action_name, params):
        try:
            return await self.client.async_call_action(
                "AVTransport", action_name, params
            )
        except ActionFault as exc:
            raise AVTransportError(exc.code, exc.description, exc.http_status)

    async def async_get_supported_protocols(self):
        """
        Return the protocols the renderer accepts (Sink side of
        GetProtocolInfo), each split into its four fields.
        """
        response = await self.client.async_call_action(
            "ConnectionManager", "GetProtocolInfo", {}
        )
        protocols = []
        for line in response["Sink"].split(","):
            line = line.strip()
            if not line:
                continue
            fields = (line.split(":", 3) + ["", "", ""])[:4]
            protocols.append(
                dict(
                    protocol=fields[0],
                    network=fields[1],
                    content_format=fields[2],
                    additional_info=fields[3],
                )
            )
        return protocols

    async def async_get_position_info(self):
        return await self.async_call_avtransport(
            "GetPositionInfo", {"InstanceID": self.instance_id}
        )

    async def async_get_position(self):
        response = await self.async_get_position_info()
        return parse_time(response["RelTime"])

    async def async_get_media_info(self):
        return await self.async_call_avtransport(
            "GetMediaInfo", {"InstanceID": self.instance_id}
        )

    async def async_get_duration(self):
        response = await self.async_get_media_info()
        return parse_time(response["MediaDuration"])

    async def async_get_transport_info(self):
        return await self.async_call_avtransport(
            "GetTransportInfo", {"InstanceID": self.instance_id}
        )

    async def async_load(self, url, content_type="video/mp4", dlna_features=None,
                         autoplay=False, title=None, creator=None, media_type=None,
                         subtitles_url=None):
        """
        Load `url` into the renderer, optionally starting playback.
        """
        protocol_info = dlna.make_protocol_info(content_type, dlna_features)
        metadata = dlna.build_metadata(
            url,
            protocol_info,
            title=title,
            creator=creator,
            media_type=media_type,
            subtitles_url=subtitles_url,
        )

        try:
            connection = await self.client.async_call_action(
                "ConnectionManager",
                "PrepareForConnection",
                {
                    "RemoteProtocolInfo": protocol_info,
                    "PeerConnectionManager": None,
                    "PeerConnectionID": -1,
                    "Direction": "Input",
                },
            )
        except NoSuchAction:
            self._log.debug("PrepareForConnection not implemented, using instance %s",
                            self.instance_id)
        else:
            self.instance_id = int(connection["AVTransportID"])

        response = await self.async_call_avtransport(
            "SetAVTransportURI",
            {
                "InstanceID": self.instance_id,
                "CurrentURI": url,
                "CurrentURIMetaData": metadata,
            },
        )
        if autoplay:
            return await self.async_play()
        return response

    async def async_load_next(self, url, content_type="video/mp4", dlna_features=None,
                              title=None, creator=None, media_type=None):
        protocol_info = dlna.make_protocol_info(content_type, dlna_features)
        return await self.async_call_avtransport(
            "SetNextAVTransportURI",
            {
                "InstanceID": self.instance_id,
                "NextURI": url,
                "NextURIMetaData": dlna.build_metadata(
                    url, protocol_info, title=title, creator=creator,
                    media_type=media_type,
                ),
            },
        )

    async def async_play(self):
        return await self.async_call_avtransport(
            "Play", {"InstanceID": self.instance_id, "Speed": 1}
        )

    async def async_pause(self):
        await self.async_call_avtransport("Pause", {"InstanceID": self.instance_id})

    async def async_stop(self):
        await self.async_call_avtransport("Stop", {"InstanceID": self.instance_id})

    async def async_seek(self, seconds):
        return await self.async_call_avtransport(
            "Seek",
            {
                "InstanceID": self.instance_id,
                "Unit": "REL_TIME",
                "Target": format_time(seconds),
            },
        )

    async def async_get_volume(self):
        response = await self.client.async_call_action(
            "RenderingControl",
            "GetVolume",
            {"InstanceID": self.instance_id, "Channel": "Master"},
        )
        _, volume = marshal_value("ui2", response["CurrentVolume"])
        return volume

    async def async_set_volume(self, volume):
        await self.client.async_call_action(
            "RenderingControl",
            "SetVolume",
            {"InstanceID": self.instance_id, "Channel": "Master", "DesiredVolume": volume},
        )
