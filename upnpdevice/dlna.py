"""
DLNA helpers: protocolInfo fourth-field features and DIDL-Lite metadata for
the media handed to a renderer.
"""
from lxml import etree

NS_DIDL = "urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/"
NS_DC = "http://purl.org/dc/elements/1.1/"
NS_UPNP = "urn:schemas-upnp-org:metadata-1-0/upnp/"
NS_SEC = "http://www.sec.co.kr/"

# DLNA.ORG_FLAGS bits
DLNA_ORG_FLAG_SENDER_PACED = 1 << 31
DLNA_ORG_FLAG_TIME_BASED_SEEK = 1 << 30
DLNA_ORG_FLAG_BYTE_BASED_SEEK = 1 << 29
DLNA_ORG_FLAG_PLAY_CONTAINER = 1 << 28
DLNA_ORG_FLAG_S0_INCREASE = 1 << 27
DLNA_ORG_FLAG_SN_INCREASE = 1 << 26
DLNA_ORG_FLAG_RTSP_PAUSE = 1 << 25
DLNA_ORG_FLAG_STREAMING_TRANSFER_MODE = 1 << 24
DLNA_ORG_FLAG_INTERACTIVE_TRANSFER_MODE = 1 << 23
DLNA_ORG_FLAG_BACKGROUND_TRANSFER_MODE = 1 << 22
DLNA_ORG_FLAG_CONNECTION_STALL = 1 << 21
DLNA_ORG_FLAG_DLNA_V15 = 1 << 20

OBJECT_CLASSES = {
    "audio": "object.item.audioItem.musicTrack",
    "video": "object.item.videoItem.movie",
    "image": "object.item.imageItem.photo",
}

SEEK_MODES = {"none": "00", "range": "01", "time": "10", "both": "11"}


def flags_string(flags):
    """
    Format flag bits as a DLNA.ORG_FLAGS field (8 significant hex digits
    followed by 24 reserved ones).
    """
    return "DLNA.ORG_FLAGS=%08x%s" % (flags, "0" * 24)


def seek_mode_feature(seek_mode):
    return "DLNA.ORG_OP=" + SEEK_MODES.get(seek_mode, "00")


def transcode_feature(transcoded):
    return "DLNA.ORG_CI=" + ("1" if transcoded else "0")


STREAMING_BYTE_BASED_FLAGS = flags_string(
    DLNA_ORG_FLAG_DLNA_V15
    | DLNA_ORG_FLAG_BYTE_BASED_SEEK
    | DLNA_ORG_FLAG_BACKGROUND_TRANSFER_MODE
    | DLNA_ORG_FLAG_STREAMING_TRANSFER_MODE
)
STREAMING_TIME_BASED_FLAGS = flags_string(
    DLNA_ORG_FLAG_DLNA_V15
    | DLNA_ORG_FLAG_TIME_BASED_SEEK
    | DLNA_ORG_FLAG_BACKGROUND_TRANSFER_MODE
    | DLNA_ORG_FLAG_STREAMING_TRANSFER_MODE
)
ORIGIN_FLAGS = flags_string(
    DLNA_ORG_FLAG_DLNA_V15
    | DLNA_ORG_FLAG_CONNECTION_STALL
    | DLNA_ORG_FLAG_INTERACTIVE_TRANSFER_MODE
)


def make_protocol_info(content_type, dlna_features=None):
    return "http-get:*:%s:%s" % (content_type, dlna_features or "*")


def build_metadata(url=None, protocol_info=None, title=None, creator=None,
                   media_type=None, subtitles_url=None):
    """
    Build the DIDL-Lite document describing a single media item.
    """
    didl = etree.Element(
        "{%s}DIDL-Lite" % NS_DIDL,
        nsmap={None: NS_DIDL, "dc": NS_DC, "upnp": NS_UPNP, "sec": NS_SEC},
    )
    item = etree.SubElement(didl, "{%s}item" % NS_DIDL)
    item.set("id", "0")
    item.set("parentID", "-1")
    item.set("restricted", "false")

    if media_type in OBJECT_CLASSES:
        etree.SubElement(item, "{%s}class" % NS_UPNP).text = OBJECT_CLASSES[media_type]
    if title:
        etree.SubElement(item, "{%s}title" % NS_DC).text = title
    if creator:
        etree.SubElement(item, "{%s}creator" % NS_DC).text = creator
    if url and protocol_info:
        res = etree.SubElement(item, "{%s}res" % NS_DIDL)
        res.set("protocolInfo", protocol_info)
        res.text = url
    if subtitles_url:
        for tag in ("CaptionInfo", "CaptionInfoEx"):
            caption = etree.SubElement(item, "{%s}%s" % (NS_SEC, tag))
            caption.set("{%s}type" % NS_SEC, "srt")
            caption.text = subtitles_url
        res = etree.SubElement(item, "{%s}res" % NS_DIDL)
        res.set("protocolInfo", "http-get:*:text/srt:*")
        res.text = subtitles_url

    return etree.tostring(didl, encoding="unicode")
