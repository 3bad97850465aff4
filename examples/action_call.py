#!/usr/bin/env python
#
# Show how to actually perform UPnP calls.
#

import sys
import asyncio

import upnpdevice

LOCATION = sys.argv[1] if len(sys.argv) > 1 else 'http://192.168.1.20:1400/xml/device_description.xml'


async def main():
    # A DeviceClient talks to the device whose description lives at LOCATION.
    # Nothing is fetched until it's needed.
    async with upnpdevice.DeviceClient(LOCATION) as client:
        # Services can be named by their bare name or their full service id.
        response = await client.async_call_action(
            'RenderingControl', 'GetVolume', {'InstanceID': 0, 'Channel': 'Master'})
        print(response)
        # Output: {'CurrentVolume': '37'}

        # Outputs are returned as strings; the SCPD tells us how to read them.
        scpd = await client.async_get_service_description('RenderingControl')
        datatype = scpd.state_variables['Volume'].datatype
        print(upnpdevice.marshal.marshal_value(datatype, response['CurrentVolume']))
        # Output: (True, 37)

        # Faults sent back by the device are raised as ActionFault
        try:
            await client.async_call_action('RenderingControl', 'GetVolume', {})
        except upnpdevice.ActionFault as exc:
            print(exc)
            # Output: 402: Invalid Args (HTTP 500)


asyncio.run(main())
