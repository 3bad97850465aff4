"""
GENA event subscriptions.

`SubscriptionManager` keeps at most one subscription per service id, shared by
every listener registered for that service. Devices push their notifications
to an embedded aiohttp server (`CallbackServer`) which only runs while at least
one subscription exists. Leases are renewed `RENEW_MARGIN` seconds before they
expire.
"""
import asyncio
from collections import OrderedDict
from urllib.parse import urlparse

import aiohttp
from aiohttp import web

from .util import _getLogger, get_ipv4_address, resolve_service_id
from .const import (
    EVENT_NT,
    MIN_RENEW_DELAY,
    RENEW_MARGIN,
    RENEW_RETRY_DELAY,
)
from .errors import (
    FetchError,
    MalformedResponse,
    NoSuchService,
    ParseError,
    RenewError,
    SubscribeError,
    SubscriptionExpired,
    UnsubscribeError,
    UPNPError,
)
from .events import parse_events


def renew_delay(timeout):
    """
    Seconds to wait before renewing a lease granted for `timeout` seconds.
    """
    return max(timeout - RENEW_MARGIN, MIN_RENEW_DELAY)


def _parse_timeout(lc_headers):
    try:
        timeout_str = lc_headers["timeout"].lower()
    except KeyError:
        raise MalformedResponse(
            'Event subscription call returned without a "Timeout" header'
        )
    if not timeout_str.startswith("second-"):
        raise MalformedResponse(
            "Event subscription call returned an invalid timeout value: %r"
            % timeout_str
        )
    timeout_str = timeout_str[len("Second-"):]
    try:
        return None if timeout_str == "infinite" else int(timeout_str)
    except ValueError:
        raise MalformedResponse(
            'Event subscription call returned a timeout value which wasn\'t "infinite" or an in'
            "teger"
        )


def validate_subscription_response(headers):
    """
    Return (sid, timeout) from the headers of a SUBSCRIBE response. `timeout`
    is None for an infinite lease.
    """
    lc_headers = {k.lower(): v for k, v in headers.items()}
    try:
        sid = lc_headers["sid"]
    except KeyError:
        raise MalformedResponse(
            'Event subscription call returned without a "SID" header'
        )
    return sid, _parse_timeout(lc_headers)


def validate_subscription_renewal_response(headers):
    lc_headers = {k.lower(): v for k, v in headers.items()}
    return _parse_timeout(lc_headers)


class Subscription(object):
    """
    An active event lease on one service.
    """

    def __init__(self, service_id, sid, url, listeners):
        self.service_id = service_id
        self.sid = sid
        self.url = url
        self.listeners = listeners
        self.timeout = None
        self.expires = None
        self.timer = None

    def __repr__(self):
        return "<Subscription '%s' sid='%s'>" % (self.service_id, self.sid)

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class CallbackServer(object):
    """
    HTTP endpoint the devices push event notifications to. `handler` is a
    coroutine called with (sid, seq, body) for every request received;
    `on_error` is called with the errors raised by it.
    """

    def __init__(self, handler, on_error, host=None, port=0):
        self.handler = handler
        self.on_error = on_error
        self.host = host
        self.port = port
        self._runner = None
        self._start_task = None
        self._log = _getLogger("CallbackServer")

    def __repr__(self):
        return "<CallbackServer %s>" % (self.callback_url if self.running else "stopped")

    @property
    def running(self):
        return self._runner is not None

    @property
    def callback_url(self):
        return "http://%s:%d/" % (self.host, self.port)

    async def async_start(self):
        """
        Start listening unless already running. Concurrent calls share a single
        start.
        """
        if self._runner is not None:
            return
        if self._start_task is None:
            self._start_task = asyncio.ensure_future(self._async_bind())
        task = self._start_task
        try:
            await asyncio.shield(task)
        finally:
            if self._start_task is task and task.done():
                self._start_task = None

    async def _async_bind(self):
        host = self.host or get_ipv4_address()
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle_notify)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self.host, self.port = runner.addresses[0][:2]
        self._runner = runner
        self._log.debug("Eventing server listening on %s", self.callback_url)

    async def async_stop(self):
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        self.port = 0
        self._log.debug("Shutting down eventing server")
        await runner.cleanup()

    async def _handle_notify(self, request):
        sid = request.headers.get("SID")
        seq = request.headers.get("SEQ")
        body = await request.read()
        try:
            await self.handler(sid, seq, body)
        except ParseError as exc:
            self._log.error("Invalid event from %s (seq %s): %s", sid, seq, exc)
            self.on_error(exc)
            return web.Response(status=400)
        return web.Response()


class SubscriptionManager(object):
    """
    Event subscriptions of one `DeviceClient`.
    """

    def __init__(self, client, callback_host=None):
        self.client = client
        self.server = CallbackServer(
            self.async_dispatch, client.emit_error, host=callback_host
        )
        self.subscriptions = OrderedDict()
        self._pending = {}
        self._tasks = set()
        self._log = _getLogger("SubscriptionManager")

    def find_by_sid(self, sid):
        for subscription in self.subscriptions.values():
            if subscription.sid == sid:
                return subscription

    async def _async_settle(self, service_id):
        """
        Wait for an in-flight subscribe or unsubscribe on `service_id`.
        """
        while service_id in self._pending:
            await self._pending[service_id].wait()

    async def _async_release_server(self, service_id=None):
        """
        Stop the callback server if no subscription exists nor is being set up
        (the in-flight operation on `service_id` aside).
        """
        if self.subscriptions:
            return
        if any(pending != service_id for pending in self._pending):
            return
        await self.server.async_stop()

    async def _async_request(self, method, url, headers):
        headers = dict(headers, HOST=urlparse(url).netloc)
        self._log.debug("%s %s %s", method, url, headers)
        try:
            async with self.client.session.request(
                method, url, headers=headers, auth=self.client.http_auth
            ) as resp:
                await resp.read()
                return resp.status, resp.headers
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(url, exc) from exc

    async def async_subscribe(self, service_id, listener):
        """
        Register `listener` for the events of `service_id`. The first listener
        of a service sets up the subscription; later ones join it.
        """
        service_id = resolve_service_id(service_id)
        await self._async_settle(service_id)

        subscription = self.subscriptions.get(service_id)
        if subscription is not None:
            if listener not in subscription.listeners:
                subscription.listeners.append(listener)
            return subscription

        done = self._pending[service_id] = asyncio.Event()
        try:
            return await self._async_create(service_id, listener)
        finally:
            del self._pending[service_id]
            done.set()

    async def _async_create(self, service_id, listener):
        device = await self.client.async_get_device_description()
        try:
            service = device.services[service_id]
        except KeyError:
            raise NoSuchService(service_id)

        await self.server.async_start()

        headers = {
            "USER-AGENT": self.client.user_agent,
            "CALLBACK": "<%s>" % self.server.callback_url,
            "NT": EVENT_NT,
            "TIMEOUT": "Second-%d" % self.client.subscription_timeout,
        }
        try:
            status, resp_headers = await self._async_request(
                "SUBSCRIBE", service.event_sub_url, headers
            )
            if status != 200:
                raise SubscribeError(status, service_id)
            sid, timeout = validate_subscription_response(resp_headers)
        except UPNPError as exc:
            await self._async_release_server(service_id)
            self.client.emit_error(exc)
            raise

        self._log.debug("Subscribed to %s (sid %s)", service_id, sid)
        subscription = Subscription(service_id, sid, service.event_sub_url, [listener])
        self.subscriptions[service_id] = subscription
        self._schedule_renewal(subscription, timeout)
        return subscription

    def _schedule_renewal(self, subscription, timeout):
        loop = asyncio.get_running_loop()
        if timeout is None:
            timeout = self.client.subscription_timeout
        subscription.timeout = timeout
        subscription.expires = loop.time() + timeout
        self._schedule(subscription, renew_delay(timeout))

    def _schedule(self, subscription, delay):
        self._log.debug(
            "Renewing subscription to %s in %s seconds", subscription.service_id, delay
        )
        subscription.cancel_timer()
        subscription.timer = asyncio.get_running_loop().call_later(
            delay, self._renew_soon, subscription.service_id
        )

    def _renew_soon(self, service_id):
        task = asyncio.ensure_future(self.async_renew(service_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def async_renew(self, service_id):
        """
        Extend the lease of the subscription on `service_id`. Failures are
        reported through the client's error listeners.
        """
        service_id = resolve_service_id(service_id)
        subscription = self.subscriptions.get(service_id)
        if subscription is None:
            return
        subscription.cancel_timer()
        self._log.debug("Renew subscription to %s", service_id)

        headers = {
            "SID": subscription.sid,
            "TIMEOUT": "Second-%d" % self.client.subscription_timeout,
        }
        try:
            status, resp_headers = await self._async_request(
                "SUBSCRIBE", subscription.url, headers
            )
            if status != 200:
                raise RenewError(status, service_id)
            timeout = validate_subscription_renewal_response(resp_headers)
        except UPNPError as exc:
            self.client.emit_error(exc)
            await self._async_renewal_failed(subscription)
            return

        if self.subscriptions.get(service_id) is not subscription:
            self._log.debug("Discarding renewal of %s, subscription is gone", service_id)
            return
        self._schedule_renewal(subscription, timeout)

    async def _async_renewal_failed(self, subscription):
        service_id = subscription.service_id
        if self.subscriptions.get(service_id) is not subscription:
            return
        loop = asyncio.get_running_loop()
        if loop.time() + RENEW_RETRY_DELAY < subscription.expires:
            self._schedule(subscription, RENEW_RETRY_DELAY)
            return

        self._log.warning("Subscription to %s expired, dropping it", service_id)
        subscription.cancel_timer()
        del self.subscriptions[service_id]
        await self._async_release_server()
        self.client.emit_error(SubscriptionExpired(None, service_id))

    async def async_unsubscribe(self, service_id, listener):
        """
        Remove `listener` from the subscription on `service_id`. The last
        listener to leave cancels the subscription.
        """
        service_id = resolve_service_id(service_id)
        await self._async_settle(service_id)

        subscription = self.subscriptions.get(service_id)
        if subscription is None or listener not in subscription.listeners:
            return
        subscription.listeners.remove(listener)
        if subscription.listeners:
            return

        done = self._pending[service_id] = asyncio.Event()
        try:
            await self._async_cancel(subscription)
        finally:
            del self._pending[service_id]
            done.set()

    async def _async_cancel(self, subscription):
        service_id = subscription.service_id
        self._log.debug("Unsubscribe from service %s", service_id)
        # The record goes away whatever the device answers; a lease we failed
        # to cancel simply lapses on the device side.
        subscription.cancel_timer()
        del self.subscriptions[service_id]
        try:
            status, _ = await self._async_request(
                "UNSUBSCRIBE", subscription.url, {"SID": subscription.sid}
            )
            if status != 200:
                raise UnsubscribeError(status, service_id)
        except UPNPError as exc:
            self.client.emit_error(exc)
        finally:
            await self._async_release_server(service_id)

    async def async_dispatch(self, sid, seq, body):
        """
        Hand the events of a pushed notification to the listeners of the
        subscription identified by `sid`. Returns False for unknown sids.
        """
        events = parse_events(body)
        self._log.debug("Received events from %s, number %s: %s", sid, seq, events)

        subscription = self.find_by_sid(sid)
        if subscription is None:
            self._log.warning("Ignoring events for unknown SID %r", sid)
            return False

        for listener in list(subscription.listeners):
            for event in events:
                try:
                    listener(event)
                except Exception as exc:
                    self._log.exception(
                        "Listener %r failed on event from %s", listener, sid
                    )
                    self.client.emit_error(exc)
        return True

    async def async_close(self):
        """
        Cancel every subscription and stop the callback server.
        """
        for service_id in list(self.subscriptions):
            await self._async_settle(service_id)
            subscription = self.subscriptions.get(service_id)
            if subscription is None:
                continue
            del subscription.listeners[:]
            done = self._pending[service_id] = asyncio.Event()
            try:
                await self._async_cancel(subscription)
            finally:
                del self._pending[service_id]
                done.set()
        for task in list(self._tasks):
            task.cancel()
        await self.server.async_stop()
