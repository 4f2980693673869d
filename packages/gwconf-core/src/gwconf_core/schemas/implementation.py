"""Implementation metadata attached to a conformance report.

Example:
    >>> from gwconf_core.schemas.implementation import parse_implementation
    >>> impl = parse_implementation(
    ...     organization="acme",
    ...     project="edge-gateway",
    ...     url="https://github.com/acme/edge-gateway",
    ...     version="v1.2.0",
    ...     contact="@acme/maintainers,ops@acme.dev",
    ... )
    >>> impl.contact
    ['@acme/maintainers', 'ops@acme.dev']
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gwconf_core.errors import InvalidImplementationError


class Implementation(BaseModel):
    """Descriptive metadata for the implementation under test.

    Attributes:
        organization: Organization responsible for the implementation.
        project: Project name.
        url: Absolute http(s) URL of the project.
        version: Version of the implementation that was tested.
        contact: Contact handles or addresses (may be empty).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    organization: str = Field(..., min_length=1, description="Owning organization")
    project: str = Field(..., min_length=1, description="Project name")
    url: str = Field(..., min_length=1, description="Project URL")
    version: str = Field(..., min_length=1, description="Tested version")
    contact: list[str] = Field(default_factory=list, description="Contact handles")

    @field_validator("organization", "project", "version", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"must be an absolute http(s) URL, got {v!r}")
        return v.strip()


def parse_implementation(
    organization: str,
    project: str,
    url: str,
    version: str,
    contact: str = "",
) -> Implementation:
    """Build Implementation from flag values.

    Args:
        organization: Organization flag value.
        project: Project flag value.
        url: URL flag value.
        version: Version flag value.
        contact: Comma-separated contact list.

    Returns:
        Validated Implementation.

    Raises:
        InvalidImplementationError: Listing every missing or malformed field.
    """
    contacts = [c.strip() for c in contact.split(",") if c.strip()]
    try:
        return Implementation(
            organization=organization,
            project=project,
            url=url,
            version=version,
            contact=contacts,
        )
    except ValidationError as e:
        errors: dict[str, str] = {}
        for err in e.errors():
            field = ".".join(str(loc) for loc in err["loc"]) or "implementation"
            if err["type"] == "string_too_short":
                errors[field] = "required"
            else:
                errors[field] = str(err["msg"])
        raise InvalidImplementationError(errors) from e


__all__ = ["Implementation", "parse_implementation"]
