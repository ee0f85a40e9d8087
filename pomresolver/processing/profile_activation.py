"""
Profile activation.

Rules are applied in a fixed order and the last one that fires wins:
``activeByDefault``, then ``jdk``, then ``os`` (accepted, never changes the
outcome), then ``property``. Only negated property conditions
(``<name>!foo</name>``) are honoured and they always activate the profile;
property values are not inspected.
"""

import xml.etree.ElementTree as ET
from typing import Optional

from ..core.logging_config import get_logger
from .maven_model import ActivationDecision
from .pom_document import get_child, get_child_body, to_boolean
from .version_range import version_matches

logger = get_logger("profile_activation")


def evaluate_activation(profile_element: ET.Element, platform_version: Optional[str]) -> ActivationDecision:
    """Compute the activation decision of a ``<profile>`` element."""
    activation = get_child(profile_element, "activation")
    if activation is None:
        return ActivationDecision(active=False, reason="no activation")

    active = False
    reason = "default"

    active_by_default = get_child_body(activation, "activeByDefault")
    if active_by_default:
        active = to_boolean(active_by_default)
        reason = "activeByDefault"

    jdk = get_child_body(activation, "jdk")
    if jdk:
        active = version_matches(platform_version, jdk)
        reason = f"jdk {jdk}"

    if get_child(activation, "os") is not None:
        logger.debug("OS activation is not evaluated", profile=get_child_body(profile_element, "id"))

    prop = get_child(activation, "property")
    if prop is not None:
        prop_name = get_child_body(prop, "name")
        if prop_name is not None and prop_name.startswith("!"):
            active = True
            reason = f"property {prop_name}"

    return ActivationDecision(active=active, reason=reason)
