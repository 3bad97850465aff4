#!/usr/bin/env python
#
# Dump the services, actions and state variables of a device, then print the
# events it sends for a minute.
#

import sys
import asyncio
import logging

import upnpdevice


async def dump(client):
    device = await client.async_get_device_description()
    print("%s: %s (%s)" % (device.friendly_name, device.model_description, device.location))
    for service_id, service in device.services.items():
        print("   %s" % (service_id))
        scpd = await client.async_get_service_description(service_id)
        for action in scpd.actions.values():
            print("      %s" % (action.name))
            for arg in action.inputs + action.outputs:
                statevar = scpd.state_variables.get(arg.related_state_variable)
                valid = ', '.join(statevar.allowed_values) if statevar else ''
                print("         %3s: %s (%s): %s" % (
                    arg.direction,
                    arg.name,
                    statevar.datatype if statevar else '?',
                    valid or '*'))


async def main(location):
    async with upnpdevice.DeviceClient(location) as client:
        client.add_error_listener(lambda exc: print("error: %s" % exc))
        await dump(client)

        device = await client.async_get_device_description()
        for service_id, service in device.services.items():
            if not service.event_sub_url:
                continue
            await client.async_subscribe(
                service_id, lambda event, name=service.name: print(name, event))
        await asyncio.sleep(60)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: %s <device description URL>" % sys.argv[0])
        sys.exit(1)
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1]))
