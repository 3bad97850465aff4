"""
This module provides an asynchronous UPnP Control Point (client) for a single,
already located device: it reads the device's capabilities, calls its actions
and keeps event subscriptions to its services alive. It implements the
description step (Device Description and SCPD), a minimal SOAP client for
control and GENA for eventing.

The usual flow for working with a UPnP device is:

- Inspect the device using its Device Description.

  The device description XML file (found in the 'Location' header of SSDP
  announcements) lists the services of the device and the URLs to reach them.
  DeviceClient.async_get_device_description() fetches and caches it.

- Inspect Services capabilities using SCPD.

  Each service publishes a separate XML file listing its actions, their
  arguments and the state variables of the service.
  DeviceClient.async_get_service_description() fetches and caches it.

- Call an Action using SOAP.

  DeviceClient.async_call_action(service_id, action_name, params) sends the
  action to the control URL of the service and returns its output arguments.

- Subscribe to events using GENA.

  DeviceClient.async_subscribe(service_id, listener) asks the device to push
  the changes of the service's state variables to an embedded HTTP server.
  Listeners are called with one dict per decoded event; leases are renewed in
  the background and errors no caller waits for are handed to the callables
  registered with DeviceClient.add_error_listener().

Service ids may be given in full ('urn:upnp-org:serviceId:AVTransport') or as
the bare service name ('AVTransport').

The following example prints the current volume of a renderer and then every
AVTransport event it sends for a minute:

------------------------------------------------------------------------------
import asyncio
import upnpdevice

async def main():
    async with upnpdevice.DeviceClient('http://192.168.1.20:1400/xml/device.xml') as client:
        print(await client.async_call_action(
            'RenderingControl', 'GetVolume', {'InstanceID': 0, 'Channel': 'Master'}))
        await client.async_subscribe('AVTransport', print)
        await asyncio.sleep(60)

asyncio.run(main())
------------------------------------------------------------------------------

Useful Links:

* http://upnp.org/specs/arch/UPnP-arch-DeviceArchitecture-v1.1.pdf
* http://upnp.org/specs/av/UPnP-av-AVTransport-v1-Service.pdf
"""
from upnpdevice import const, description, dlna, errors, events, eventing, marshal, soap, upnp, util  # noqa: F401
from .upnp import DeviceClient
from .mediarenderer import MediaRenderer, AVTransportError
from .events import parse_events
from .errors import (
    UPNPError,
    FetchError,
    ParseError,
    NoSuchService,
    NoSuchAction,
    MalformedResponse,
    ActionFault,
    EventingError,
    SubscribeError,
    RenewError,
    SubscriptionExpired,
    UnsubscribeError,
)

__all__ = [
    "DeviceClient", "MediaRenderer", "parse_events", "UPNPError", "FetchError",
    "ParseError", "NoSuchService", "NoSuchAction", "MalformedResponse", "ActionFault",
    "AVTransportError", "EventingError", "SubscribeError", "RenewError",
    "SubscriptionExpired", "UnsubscribeError",
]
