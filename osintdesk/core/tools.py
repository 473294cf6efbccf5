"""
Registry of the OSINT tools a job can run, and the input schema for each.

The tool binaries themselves run in the external worker. This module only
decides which tool names exist and what a valid ``input_data`` looks like for
each of them, so bad input is rejected before a job row is written.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, HttpUrl
from pydantic import ValidationError as PydanticValidationError
from pydantic import EmailStr

from osintdesk.core.errors import ValidationError

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"
DOMAIN_PATTERN = r"^([a-zA-Z0-9]+(-[a-zA-Z0-9]+)*\.)+[a-zA-Z]{2,}$"
PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------


class UsernameSearchInput(BaseModel):
    username: str = Field(min_length=1, max_length=50, pattern=USERNAME_PATTERN)
    timeout: int = Field(default=60, ge=1, le=300)
    sites: list[str] | None = None
    proxy: HttpUrl | None = None


class DomainSearchInput(BaseModel):
    domain: str = Field(min_length=1, max_length=255, pattern=DOMAIN_PATTERN)
    sources: list[str] | None = None
    limit: int = Field(default=100, ge=1, le=500)
    startFrom: int = Field(default=0, ge=0)
    dns: bool = True
    takeover: bool = False


class EmailSearchInput(BaseModel):
    email: EmailStr = Field(max_length=255)
    onlyUsed: bool = True
    timeout: int = Field(default=30, ge=5, le=120)


class PhoneSearchInput(BaseModel):
    phoneNumber: str = Field(min_length=1, max_length=20, pattern=PHONE_PATTERN)
    scanners: list[str] | None = None


class ImageAnalysisInput(BaseModel):
    imagePath: str = Field(min_length=1)
    extractGPS: bool = True
    extractAll: bool = True


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolSpec:
    name: str
    category: str
    description: str
    input_model: type[BaseModel]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "input_schema": self.input_model.model_json_schema(),
        }


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            "sherlock",
            "username",
            "Hunt down social media accounts by username across social networks",
            UsernameSearchInput,
        ),
        ToolSpec(
            "maigret",
            "username",
            "Collect a dossier on a person by username from thousands of sites",
            UsernameSearchInput,
        ),
        ToolSpec(
            "theharvester",
            "domain",
            "Gather emails, subdomains, hosts and IPs for a domain from public sources",
            DomainSearchInput,
        ),
        ToolSpec(
            "sublist3r",
            "domain",
            "Enumerate subdomains of a domain using search engines",
            DomainSearchInput,
        ),
        ToolSpec(
            "amass",
            "domain",
            "In-depth attack surface mapping and subdomain discovery",
            DomainSearchInput,
        ),
        ToolSpec(
            "holehe",
            "email",
            "Check if an email is attached to an account on over 120 websites",
            EmailSearchInput,
        ),
        ToolSpec(
            "h8mail",
            "email",
            "Search breach data and leaked credentials for an email address",
            EmailSearchInput,
        ),
        ToolSpec(
            "phoneinfoga",
            "phone",
            "Gather carrier, line type and footprint information for a phone number",
            PhoneSearchInput,
        ),
        ToolSpec(
            "exiftool",
            "image",
            "Extract EXIF metadata and GPS coordinates from an image",
            ImageAnalysisInput,
        ),
    )
}


def format_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten pydantic errors into ``"<loc>: <msg>"`` strings."""
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        details.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return details


def get_tool(tool_name: str) -> ToolSpec:
    spec = TOOLS.get(tool_name)
    if spec is None:
        raise ValidationError(
            f"Unknown tool: {tool_name}",
            details=[f"tool_name: must be one of {', '.join(TOOLS)}"],
        )
    return spec


def validate_tool_input(tool_name: str, input_data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate ``input_data`` against the schema registered for ``tool_name``.

    Returns the normalised input (defaults filled in, unknown keys dropped)
    in JSON-compatible form, ready to be stored on the job row.

    Raises:
        ValidationError: unknown tool or input that fails the tool's schema.
    """
    spec = get_tool(tool_name)
    try:
        parsed = spec.input_model.model_validate(input_data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid input for {tool_name}", details=format_pydantic_errors(e)
        )
    return parsed.model_dump(mode="json", exclude_none=True)


def list_tools() -> list[dict[str, Any]]:
    return [spec.to_dict() for spec in TOOLS.values()]
