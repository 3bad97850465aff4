class UPNPError(Exception):
    """
    Exception class for UPnP errors.
    """

    pass


class FetchError(UPNPError):
    """
    A description or control URL couldn't be reached.
    """

    def __init__(self, url, reason=None):
        super(FetchError, self).__init__("Unable to fetch %s: %s" % (url, reason))
        self.url = url
        self.reason = reason


class ParseError(UPNPError):
    """
    A document received from the device (or pushed to us) isn't valid XML.
    """

    pass


class NoSuchService(UPNPError):
    """
    Service isn't provided by the device.
    """

    def __init__(self, service_id):
        super(NoSuchService, self).__init__(
            "Service %r not provided by device" % service_id
        )
        self.service_id = service_id


class NoSuchAction(UPNPError):
    """
    Action doesn't exist.
    """

    def __init__(self, action_name):
        super(NoSuchAction, self).__init__(
            "Action %r not implemented by service" % action_name
        )
        self.action_name = action_name


class MalformedResponse(UPNPError):
    """
    Got a response we didn't expect.
    """

    pass


class ActionFault(UPNPError):
    """
    The device refused an action call. `code` is the UPnP error code reported
    in the fault body, `http_status` the status of the HTTP response.
    """

    def __init__(self, code, description, http_status):
        super(ActionFault, self).__init__(code, description)
        self.code = code
        self.description = description
        self.http_status = http_status

    def __str__(self):
        return "%s: %s (HTTP %s)" % (self.code, self.description, self.http_status)


class EventingError(UPNPError):
    """
    A SUBSCRIBE or UNSUBSCRIBE request was answered with a non-success status.
    """

    method = "SUBSCRIBE"

    def __init__(self, http_status, service_id=None):
        super(EventingError, self).__init__(
            "%s - %s error for %s" % (http_status, self.method, service_id)
        )
        self.http_status = http_status
        self.service_id = service_id


class SubscribeError(EventingError):
    pass


class RenewError(EventingError):
    method = "SUBSCRIBE renewal"


class SubscriptionExpired(RenewError):
    """
    Renewals kept failing until the lease lapsed; the subscription was dropped
    and its listeners must subscribe again.
    """

    method = "SUBSCRIBE renewal (lease expired)"


class UnsubscribeError(EventingError):
    method = "UNSUBSCRIBE"


class ErrorCodeDescriptions(object):
    """
    Standard descriptions for the error codes a device may return in a fault.
    """

    _descriptions = {
        401: "Invalid Action",
        402: "Invalid Args",
        404: "Invalid Var",
        501: "Action Failed",
        600: "Argument Value Invalid",
        601: "Argument Value Out of Range",
        602: "Optional Action Not Implemented",
        603: "Out of Memory",
        604: "Human Intervention Required",
        605: "String Argument Too Long",
    }

    _ranges = (
        (606, 612, "These ErrorCodes are reserved for UPnP DeviceSecurity."),
        (613, 699, "Common action errors. Defined by UPnP Forum Technical Committee."),
        (700, 799, "Action-specific errors defined by UPnP Forum working committee."),
        (
            800,
            899,
            "Action-specific errors for non-standard actions. Defined by UPnP vendor.",
        ),
    )

    def __getitem__(self, key):
        if not isinstance(key, int):
            raise KeyError("'key' must be an integer")
        try:
            return self._descriptions[key]
        except KeyError:
            pass
        for low, high, description in self._ranges:
            if low <= key <= high:
                return description
        raise KeyError("Unknown error code %r" % key)

    def get(self, key, default=None):
        try:
            return self[key]
        except KeyError:
            return default


ERR_CODE_DESCRIPTIONS = ErrorCodeDescriptions()
