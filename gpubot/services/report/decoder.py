"""Decode raw ``nvidia-smi -q -x`` output into an :class:`NvidiaSmiLog`."""

import xml.etree.ElementTree as ET

import structlog

from gpubot.core.exceptions import MalformedDocumentError
from gpubot.schemas.smi import TEXT_KEY, NvidiaSmiLog

logger = structlog.get_logger()

ROOT_TAG = "nvidia_smi_log"


def _element_to_value(element: ET.Element) -> str | dict:
    """Convert an element into the plain value the schema validates.

    Leaves become their literal text. Elements with attributes or children
    become dicts: attributes under ``@name``, children under their tag, and a
    tag seen more than once collects into a list in document order.
    """
    children = list(element)
    text = element.text or ""
    if not children and not element.attrib:
        return text

    node: dict = {f"@{name}": value for name, value in element.attrib.items()}
    if text.strip():
        node[TEXT_KEY] = text
    for child in children:
        value = _element_to_value(child)
        existing = node.get(child.tag)
        if existing is None:
            node[child.tag] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            node[child.tag] = [existing, value]
    return node


def decode(raw: bytes | str) -> NvidiaSmiLog:
    """Parse nvidia-smi XML output.

    Raises MalformedDocumentError when the input is not well-formed XML or is
    not an ``nvidia_smi_log`` document. Missing nodes are not an error.
    """
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        raise MalformedDocumentError(
            f"nvidia-smi output is not well-formed XML: {e}",
            details={"position": list(e.position) if e.position else None},
        )

    if root.tag != ROOT_TAG:
        raise MalformedDocumentError(
            f"Expected <{ROOT_TAG}> root element, got <{root.tag}>.",
            details={"root": root.tag},
        )

    value = _element_to_value(root)
    report = NvidiaSmiLog.model_validate(value)
    logger.debug("smi_report_decoded", gpus=len(report.gpu), driver_version=report.driver_version)
    return report
