import asyncio

import aiohttp
from lxml import etree

from .util import _getLogger
from .const import NS_SOAP_ENV, NS_SOAP_ENC
from .errors import (
    ERR_CODE_DESCRIPTIONS,
    ActionFault,
    FetchError,
    MalformedResponse,
    ParseError,
)


def _find_first(root, name):
    """
    Return the first element anywhere in the document whose local name is
    `name`, whatever namespace it lives in.
    """
    nodes = root.xpath("//*[local-name()=$name]", name=name)
    return nodes[0] if nodes else None


class SOAP(object):
    """SOAP (Simple Object Access Protocol) implementation
    This class defines a simple SOAP client.
    """

    def __init__(self, url, service_type, session):
        self.url = url
        self.service_type = service_type
        self.session = session
        self._log = _getLogger("SOAP")

    def build_envelope(self, action_name, params=None):
        """
        Build the request body for `action_name`. Arguments are serialized in
        the order of `params`; None becomes an empty element.
        """
        envelope = etree.Element(
            "{%s}Envelope" % NS_SOAP_ENV, nsmap={"s": NS_SOAP_ENV}
        )
        envelope.set("{%s}encodingStyle" % NS_SOAP_ENV, NS_SOAP_ENC)
        body = etree.SubElement(envelope, "{%s}Body" % NS_SOAP_ENV)
        action = etree.SubElement(
            body,
            "{%s}%s" % (self.service_type, action_name),
            nsmap={"u": self.service_type},
        )
        for name, value in (params or {}).items():
            arg = etree.SubElement(action, name)
            arg.text = "" if value is None else str(value)
        return etree.tostring(envelope, xml_declaration=True, encoding="utf-8")

    async def async_call(self, action_name, params=None, output_names=(),
                         http_auth=None, http_headers=None):
        """
        Call `action_name` and return a dict holding the text of each of
        `output_names` found in the response.
        """
        body = self.build_envelope(action_name, params)
        headers = dict(http_headers or {})
        headers.update({
            "Content-Type": 'text/xml; charset="utf-8"',
            "Content-Length": str(len(body)),
            "Connection": "close",
            "SOAPACTION": '"%s#%s"' % (self.service_type, action_name),
        })
        self._log.debug(">> %s %s (%s)", self.url, action_name, params)
        try:
            async with self.session.post(
                self.url, data=body, headers=headers, auth=http_auth
            ) as resp:
                status = resp.status
                content = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(self.url, exc) from exc

        return self.parse_response(status, content, output_names)

    def parse_response(self, status, content, output_names=()):
        try:
            root = etree.fromstring(content)
        except (etree.XMLSyntaxError, ValueError) as exc:
            raise ParseError("Invalid XML in action response: %s" % exc)

        if status != 200:
            code_node = _find_first(root, "errorCode")
            if code_node is None or not (code_node.text or "").strip():
                raise MalformedResponse(
                    "Fault response (HTTP %s) without an errorCode element" % status
                )
            try:
                code = int(code_node.text.strip())
            except ValueError:
                raise MalformedResponse(
                    "Fault response with a non-numeric errorCode %r" % code_node.text
                )
            desc_node = _find_first(root, "errorDescription")
            if desc_node is not None and desc_node.text:
                description = desc_node.text.strip()
            else:
                description = ERR_CODE_DESCRIPTIONS.get(code, "")
            raise ActionFault(code, description, status)

        params_out = {}
        for name in output_names:
            node = _find_first(root, name)
            if node is None:
                raise MalformedResponse(
                    "Returned XML did not include an element for %r" % name
                )
            params_out[name] = node.text or ""
        self._log.debug("<< %s: %s", self.url, params_out)
        return params_out
