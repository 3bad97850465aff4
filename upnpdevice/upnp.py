import asyncio

import aiohttp

from .util import _getLogger, default_user_agent, resolve_service_id
from .const import HTTP_TIMEOUT, SUBSCRIPTION_TIMEOUT
from .description import DeviceDescription, ServiceDescription
from .errors import FetchError, NoSuchAction, NoSuchService
from .eventing import SubscriptionManager
from .soap import SOAP


class DeviceClient(object):
    """
    UPNP control point for a single device.
    `location` is an URL to the device description XML file, per UPnP standard
    section 2.3 ('Device Description'), usually the 'Location' header of an
    SSDP announcement.

    Descriptions are fetched lazily and cached for the lifetime of the client.

    Example:

    >>> async with DeviceClient('http://192.168.1.20:1400/xml/device.xml') as client:
    ...     await client.async_call_action(
    ...         'RenderingControl', 'GetVolume', {'InstanceID': 0, 'Channel': 'Master'})
    ...
    {'CurrentVolume': '37'}
    """

    def __init__(
        self,
        location,
        session=None,
        http_auth=None,
        http_headers=None,
        http_timeout=HTTP_TIMEOUT,
        user_agent=None,
        callback_host=None,
        subscription_timeout=SUBSCRIPTION_TIMEOUT,
    ):
        self.location = location
        self.http_auth = aiohttp.BasicAuth(*http_auth) if http_auth else None
        self.http_headers = http_headers
        self.http_timeout = http_timeout
        self.user_agent = user_agent if user_agent is not None else default_user_agent()
        self.subscription_timeout = subscription_timeout
        self._session = session
        self._owns_session = session is None
        self._log = _getLogger("DeviceClient")

        self._device_tasks = {}
        self._service_tasks = {}
        self._error_listeners = []
        self.subscription_manager = SubscriptionManager(self, callback_host=callback_host)

    def __repr__(self):
        return "<DeviceClient '%s'>" % (self.location)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.async_close()

    @property
    def session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def async_close(self):
        """
        Drop every event subscription and close the HTTP session if we own it.
        """
        await self.subscription_manager.async_close()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def add_error_listener(self, listener):
        """
        Register a callable receiving the errors of background work (lease
        renewals, pushed events, cancellations) that no caller is waiting on.
        """
        if listener not in self._error_listeners:
            self._error_listeners.append(listener)

    def remove_error_listener(self, listener):
        if listener in self._error_listeners:
            self._error_listeners.remove(listener)

    def emit_error(self, error):
        self._log.error("%s: %s", self.location, error)
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception:
                self._log.exception("Error listener %r failed", listener)

    async def _async_fetch(self, url):
        self._log.debug("Reading %s", url)
        try:
            async with self.session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.http_timeout),
                auth=self.http_auth,
                headers=self.http_headers,
            ) as resp:
                resp.raise_for_status()
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(url, exc) from exc

    async def _async_cached(self, cache, key, coro_func):
        """
        Return the cached result for `key`, running `coro_func` once to produce
        it. Concurrent callers share the same in-flight fetch; a failed fetch
        isn't cached.
        """
        task = cache.get(key)
        if task is None:
            task = cache[key] = asyncio.ensure_future(coro_func())
        try:
            return await asyncio.shield(task)
        except Exception:
            if cache.get(key) is task:
                del cache[key]
            raise

    async def async_get_device_description(self):
        """
        Retrieve the device description, fetching it on first use.
        """
        return await self._async_cached(
            self._device_tasks, self.location, self._async_read_device_description
        )

    async def _async_read_device_description(self):
        desc = DeviceDescription.from_xml(
            await self._async_fetch(self.location), self.location
        )
        for service in desc.services.values():
            self._log.debug(
                "%s: Service %r at %r",
                desc.friendly_name,
                service.service_type,
                service.scpd_url,
            )
        return desc

    async def async_get_service_ref(self, service_id):
        service_id = resolve_service_id(service_id)
        device = await self.async_get_device_description()
        try:
            return device.services[service_id]
        except KeyError:
            raise NoSuchService(service_id)

    async def async_get_service_description(self, service_id):
        """
        Retrieve the actions and state variables of `service_id`, fetching its
        SCPD document on first use.
        """
        service = await self.async_get_service_ref(service_id)

        async def read():
            return ServiceDescription.from_xml(await self._async_fetch(service.scpd_url))

        return await self._async_cached(self._service_tasks, service.service_id, read)

    async def async_call_action(self, service_id, action_name, params=None):
        """
        Call `action_name` on `service_id` with `params` (a mapping, sent in
        iteration order) and return its declared outputs as strings.
        """
        service = await self.async_get_service_ref(service_id)
        service_desc = await self.async_get_service_description(service.service_id)
        try:
            action = service_desc.actions[action_name]
        except KeyError:
            raise NoSuchAction(action_name)

        soap = SOAP(service.control_url, service.service_type, self.session)
        return await soap.async_call(
            action_name,
            params or {},
            output_names=action.output_names,
            http_auth=self.http_auth,
            http_headers=self.http_headers,
        )

    async def async_subscribe(self, service_id, listener):
        return await self.subscription_manager.async_subscribe(service_id, listener)

    async def async_unsubscribe(self, service_id, listener):
        await self.subscription_manager.async_unsubscribe(service_id, listener)
