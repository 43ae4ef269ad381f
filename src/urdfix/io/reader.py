"""XML reading for URDF documents.

Parsing is delegated to lxml; this module only configures the parser, turns
syntax errors into UrdfParseError and checks the root element.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from urdfix.exceptions import UrdfParseError

logger = logging.getLogger(__name__)


def _make_parser() -> etree.XMLParser:
    # Comments and blank text are kept; lowering decides what is layout.
    return etree.XMLParser(
        remove_blank_text=False,
        remove_comments=False,
        resolve_entities=False,
        no_network=True,
    )


def parse_urdf_string(content: Union[str, bytes], source: Optional[str] = None) -> etree._Element:
    """Parse URDF text into an lxml element tree.

    Args:
        content: The URDF XML content, as text or encoded bytes.
        source: Label used in error messages (usually the file name).

    Returns:
        The ``<robot>`` root element.

    Raises:
        UrdfParseError: If the input is not well-formed XML or its root is
            not a ``<robot>`` element.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        root = etree.fromstring(data, parser=_make_parser())
    except etree.XMLSyntaxError as exc:
        raise UrdfParseError(f"XML parse error: {exc.msg}", source=source, line=exc.lineno) from exc

    if root.tag != "robot":
        raise UrdfParseError(
            f"Root element must be 'robot', found '{root.tag}'",
            source=source,
            line=root.sourceline,
        )
    logger.debug("Parsed %s (%d top-level nodes)", source or "<string>", len(root))
    return root


def load_urdf_tree(urdf_path: Union[str, Path]) -> etree._Element:
    """Read and parse a URDF file.

    OSError from reading the file propagates unchanged.
    """
    path = Path(urdf_path)
    return parse_urdf_string(path.read_bytes(), source=str(path))
