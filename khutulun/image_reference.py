"""OCI image references as described by Khutulun capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any


class InvalidImageReference(ValueError):
    """Raised when an OCI image reference has an invalid combination of fields."""


_TOGETHER = "invalid OCI image reference: `image`, `host`, and `tag` must be set together"
_EXCLUSIVE = "invalid OCI image reference: `image` incompatible with `artifact` and `reference`"
_DIGEST = "invalid OCI image reference: `digest-algorithm` and `digest-hex` must be set together"


@dataclass
class OCIImageReference:
    """An OCI image reference, either literal or assembled from parts."""

    artifact: str = ""
    reference: str = ""
    host: str = ""
    image: str = ""
    tag: str = ""
    port: int = 0
    repository: str = ""
    digest_algorithm: str = ""
    digest_hex: str = ""

    @classmethod
    def from_value(cls, value: Mapping[str, Any] | None) -> OCIImageReference:
        """Build a reference from a mapping with kebab-case keys; unknown keys are ignored."""
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise TypeError(f"OCI image reference must be a mapping, not {type(value).__name__}")
        kwargs: dict[str, Any] = {}
        for field in fields(cls):
            key = field.name.replace("_", "-")
            item = value.get(key)
            if item is None:
                continue
            kwargs[field.name] = int(item) if field.name == "port" else str(item)
        return cls(**kwargs)

    def _others_set(self, *exclude: str) -> bool:
        return any(
            getattr(self, field.name)
            for field in fields(self)
            if field.name not in exclude
        )

    def validate(self) -> None:
        """Raise InvalidImageReference if the fields are inconsistent."""
        if self.artifact and self._others_set("artifact"):
            raise InvalidImageReference(
                "invalid OCI image reference: `artifact` incompatible with other properties"
            )
        if self.reference and self._others_set("reference"):
            raise InvalidImageReference(
                "invalid OCI image reference: `reference` incompatible with other properties"
            )

        parts = {"image": self.image, "host": self.host, "tag": self.tag}
        for name, value in parts.items():
            if value:
                if not all(other for key, other in parts.items() if key != name):
                    raise InvalidImageReference(_TOGETHER)
                if self.artifact or self.reference:
                    raise InvalidImageReference(_EXCLUSIVE)

        if bool(self.digest_algorithm) != bool(self.digest_hex):
            raise InvalidImageReference(_DIGEST)

    def __str__(self) -> str:
        # [host[:port]/][repository/]image[:tag][@digest-algorithm:digest-hex]
        if self.reference:
            return self.reference

        text = ""
        if self.host:
            text += self.host
            if self.port:
                text += f":{self.port}"
            text += "/"
        if self.repository:
            text += f"{self.repository}/"
        text += self.image
        if self.tag:
            text += f":{self.tag}"
        if self.digest_algorithm and self.digest_hex:
            text += f"@{self.digest_algorithm}:{self.digest_hex}"
        return text