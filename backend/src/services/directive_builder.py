"""
Directive construction.

Directives are instructions that replace a manifest: "you are up to date" or
"roll back to the build embedded in the binary". Protocol version 0 has no
directive part, so neither can be emitted to v0 clients.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from backend.src.services.exceptions import ProtocolViolationError, ValidationError
from backend.src.services.manifest_builder import format_timestamp
from backend.src.utils.hashing import update_ids_match


class DirectiveType(str, enum.Enum):
    NO_UPDATE_AVAILABLE = "noUpdateAvailable"
    ROLL_BACK_TO_EMBEDDED = "rollBackToEmbedded"


@dataclass
class Directive:
    type: DirectiveType
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.parameters:
            data["parameters"] = self.parameters
        return data


def build_no_update_available(protocol_version: int) -> Directive:
    """
    Tell a client it already runs the latest update.

    Raises:
        ProtocolViolationError: If called for protocol version 0
    """
    if protocol_version == 0:
        raise ProtocolViolationError("noUpdateAvailable directive requires protocol version 1")
    return Directive(type=DirectiveType.NO_UPDATE_AVAILABLE)


def build_rollback(
    protocol_version: int,
    current_update_id: Optional[str],
    embedded_update_id: Optional[str],
    commit_time: datetime,
) -> Directive:
    """
    Tell a client to return to its embedded build.

    A client already running the embedded build gets noUpdateAvailable
    instead, so it does not loop on rollbacks.

    Args:
        protocol_version: Negotiated protocol version
        current_update_id: Update id the client currently runs
        embedded_update_id: Update id baked into the client binary
        commit_time: When the rollback was published

    Raises:
        ValidationError: On protocol version 0, or without an embedded update id
    """
    if protocol_version == 0:
        raise ValidationError("Rollbacks not supported on protocol version 0")
    if not embedded_update_id:
        raise ValidationError("Invalid Expo-Embedded-Update-ID request header specified.")

    if update_ids_match(current_update_id, embedded_update_id):
        return build_no_update_available(protocol_version)

    return Directive(
        type=DirectiveType.ROLL_BACK_TO_EMBEDDED,
        parameters={"commitTime": format_timestamp(commit_time)},
    )
