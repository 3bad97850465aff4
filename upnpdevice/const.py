PACKAGE_NAME = "upnpdevice"
PACKAGE_VERSION = "0.1.0"
UPNP_VERSION = "UPnP/1.1"

HTTP_TIMEOUT = 10

SERVICE_ID_PREFIX = "urn:upnp-org:serviceId:"

NS_SOAP_ENV = "http://schemas.xmlsoap.org/soap/envelope/"
NS_SOAP_ENC = "http://schemas.xmlsoap.org/soap/encoding/"

# Event subscriptions
SUBSCRIPTION_TIMEOUT = 300
RENEW_MARGIN = 30
MIN_RENEW_DELAY = 30
RENEW_RETRY_DELAY = 10
EVENT_NT = "upnp:event"
