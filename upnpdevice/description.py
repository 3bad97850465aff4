"""
Device Description and Service Control Point Definition (SCPD) documents.

The device description lists the services a device offers together with the
URLs used to talk to them. Each service in turn publishes an SCPD document
listing the actions it implements and the state variables it keeps.
"""
from functools import partial
from collections import OrderedDict

from lxml import etree

from .errors import ParseError
from .util import _getLogger, absolute_url


def _parse_xml(data):
    try:
        return etree.fromstring(data)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError("Invalid XML document: %s" % exc)


def _text(findtext, path):
    value = findtext(path)
    return value.strip() if value is not None else ""


class Icon(object):
    def __init__(self, mimetype, width, height, depth, url):
        self.mimetype = mimetype
        self.width = width
        self.height = height
        self.depth = depth
        self.url = url

    def __repr__(self):
        return "<Icon '%s' %sx%s>" % (self.url, self.width, self.height)


class ServiceRef(object):
    """
    A service entry of a device description. All URLs are absolute.
    """

    def __init__(self, service_type, service_id, scpd_url, control_url, event_sub_url):
        self.service_type = service_type
        self.service_id = service_id
        self.scpd_url = scpd_url
        self.control_url = control_url
        self.event_sub_url = event_sub_url

    def __repr__(self):
        return "<ServiceRef service_id='%s'>" % (self.service_id)

    @property
    def name(self):
        try:
            return self.service_id[self.service_id.rindex(":") + 1:]
        except ValueError:
            return self.service_id


class DeviceDescription(object):
    """
    Parsed root device document.

    Example:

    >>> desc = DeviceDescription.from_xml(data, 'http://192.168.1.20:1400/xml/device.xml')
    >>> for service_id in desc.services:
    ...     print(service_id)
    ...
    urn:upnp-org:serviceId:RenderingControl
    urn:upnp-org:serviceId:ConnectionManager
    urn:upnp-org:serviceId:AVTransport
    """

    def __init__(self, location):
        self.location = location
        self.device_type = None
        self.friendly_name = None
        self.manufacturer = None
        self.manufacturer_url = None
        self.model_description = None
        self.model_name = None
        self.model_number = None
        self.serial_number = None
        self.udn = None
        self.icons = []
        self.services = OrderedDict()

    def __repr__(self):
        return "<DeviceDescription '%s'>" % (self.friendly_name)

    @classmethod
    def from_xml(cls, data, location):
        """
        Parse a device description retrieved from `location`. Every URL found in
        the document is made absolute against `location`.
        """
        root = _parse_xml(data)
        findtext = partial(_text, partial(root.findtext, namespaces=root.nsmap))

        desc = cls(location)
        desc.device_type = findtext("device/deviceType")
        desc.friendly_name = findtext("device/friendlyName")
        desc.manufacturer = findtext("device/manufacturer")
        desc.manufacturer_url = findtext("device/manufacturerURL")
        desc.model_description = findtext("device/modelDescription")
        desc.model_name = findtext("device/modelName")
        desc.model_number = findtext("device/modelNumber")
        desc.serial_number = findtext("device/serialNumber")
        desc.udn = findtext("device/UDN")

        for node in root.findall("device/iconList/icon", namespaces=root.nsmap):
            icon_text = partial(_text, partial(node.findtext, namespaces=node.nsmap))
            desc.icons.append(
                Icon(
                    icon_text("mimetype"),
                    icon_text("width"),
                    icon_text("height"),
                    icon_text("depth"),
                    absolute_url(location, icon_text("url")),
                )
            )

        # The double slash in the XPath is deliberate, as services can be
        # listed in two places (Section 2.3 of uPNP device architecture v1.1)
        for node in root.findall("device//serviceList/service", namespaces=root.nsmap):
            svc_text = partial(_text, partial(node.findtext, namespaces=node.nsmap))
            svc = ServiceRef(
                svc_text("serviceType"),
                svc_text("serviceId"),
                absolute_url(location, svc_text("SCPDURL")),
                absolute_url(location, svc_text("controlURL")),
                absolute_url(location, svc_text("eventSubURL")),
            )
            desc.services[svc.service_id] = svc
        return desc


class Argument(object):
    def __init__(self, name, direction, related_state_variable):
        self.name = name
        self.direction = direction
        self.related_state_variable = related_state_variable

    def __repr__(self):
        return "<Argument '%s' %s>" % (self.name, self.direction)


class Action(object):
    def __init__(self, name, inputs=None, outputs=None):
        self.name = name
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []

    def __repr__(self):
        return "<Action '%s'>" % (self.name)

    @property
    def output_names(self):
        return [arg.name for arg in self.outputs]


class StateVariable(object):
    def __init__(self, name, datatype, send_events=True, allowed_values=None,
                 default_value=None):
        self.name = name
        self.datatype = datatype
        self.send_events = send_events
        self.allowed_values = allowed_values if allowed_values is not None else []
        self.default_value = default_value

    def __repr__(self):
        return "<StateVariable '%s' (%s)>" % (self.name, self.datatype)


class ServiceDescription(object):
    """
    Service Control Point Definition: the actions and state variables of one
    service.
    """

    def __init__(self, actions=None, state_variables=None):
        self.actions = actions if actions is not None else OrderedDict()
        self.state_variables = (
            state_variables if state_variables is not None else OrderedDict()
        )
        self._log = _getLogger("ServiceDescription")

    def __repr__(self):
        return "<ServiceDescription actions=%r>" % (list(self.actions))

    @classmethod
    def from_xml(cls, data):
        root = _parse_xml(data)
        desc = cls()
        desc._read_state_vars(root)
        desc._read_actions(root)
        return desc

    def _read_state_vars(self, root):
        for statevar_node in root.findall(
            "serviceStateTable/stateVariable", namespaces=root.nsmap
        ):
            findtext = partial(statevar_node.findtext, namespaces=statevar_node.nsmap)
            findall = partial(statevar_node.findall, namespaces=statevar_node.nsmap)
            name = _text(findtext, "name")
            default_value = findtext("defaultValue")
            self.state_variables[name] = StateVariable(
                name,
                _text(findtext, "dataType"),
                send_events=statevar_node.attrib.get("sendEvents", "yes").lower()
                == "yes",
                allowed_values=[
                    (e.text or "").strip()
                    for e in findall("allowedValueList/allowedValue")
                ],
                default_value=default_value.strip()
                if default_value is not None
                else None,
            )

    def _read_actions(self, root):
        for action_node in root.findall("actionList/action", namespaces=root.nsmap):
            name = _text(
                partial(action_node.findtext, namespaces=action_node.nsmap), "name"
            )
            action = Action(name)
            for arg_node in action_node.findall(
                "argumentList/argument", namespaces=action_node.nsmap
            ):
                findtext = partial(arg_node.findtext, namespaces=arg_node.nsmap)
                argument = Argument(
                    _text(findtext, "name"),
                    _text(findtext, "direction").lower(),
                    _text(findtext, "relatedStateVariable"),
                )
                if argument.direction == "in":
                    action.inputs.append(argument)
                else:
                    action.outputs.append(argument)
            self._log.debug(
                "Action %s: in=%s out=%s",
                name,
                [a.name for a in action.inputs],
                action.output_names,
            )
            self.actions[name] = action
