"""Input validation: form schemas and public-URL checks."""

import ipaddress
import re
import socket
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from utils.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_BLOCKED_HOSTS = {'localhost', '127.0.0.1', '0.0.0.0', '::1', 'metadata.google.internal'}
_PRIVATE_PATTERNS = (
    re.compile(r'^10\.'),
    re.compile(r'^192\.168\.'),
    re.compile(r'^172\.(1[6-9]|2[0-9]|3[0-1])\.'),
    re.compile(r'^169\.254\.'),
)


def _is_blocked_ip(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_unspecified


def validate_public_url(url: str, resolve_dns: bool = False) -> str:
    """
    Accept only http(s) URLs that point at public hosts.

    With resolve_dns the hostname is resolved and every address checked,
    which also catches public names that point at private ranges.

    Returns the stripped URL; raises ValidationError otherwise.
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL is required")

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        raise ValidationError("Only HTTP(S) URLs are allowed")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise ValidationError("Invalid URL format")

    if hostname in _BLOCKED_HOSTS or any(p.match(hostname) for p in _PRIVATE_PATTERNS) or _is_blocked_ip(hostname):
        raise ValidationError("Private/internal URLs are not allowed")

    if resolve_dns:
        try:
            addr_info = socket.getaddrinfo(hostname, None)
        except socket.gaierror:
            raise ValidationError(f"Cannot resolve hostname: {hostname}")
        for _family, _type, _proto, _canonname, sockaddr in addr_info:
            if _is_blocked_ip(sockaddr[0]):
                raise ValidationError("Private/internal URLs are not allowed")

    return url


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class StudyPlanForm(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    problem_statement: str = Field(min_length=10, max_length=2000)
    solution_goal: str = Field(min_length=10, max_length=2000)

    @field_validator("title", "problem_statement", "solution_goal", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class ObservationForm(BaseModel):
    observation_type: str = Field(min_length=1, max_length=50)
    content: str = Field(min_length=5, max_length=5000)
    tags: List[str] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return _strip(v)


class PersonaForm(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    goals: List[str] = Field(default_factory=list)
    pain_points: List[str] = Field(default_factory=list)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("goals", "pain_points")
    @classmethod
    def check_items(cls, items: List[str]) -> List[str]:
        cleaned = [item.strip() for item in items]
        for item in cleaned:
            if not 3 <= len(item) <= 200:
                raise ValueError("each item must be between 3 and 200 characters")
        return cleaned


class CrawlRequest(BaseModel):
    url: str
    mode: str = "light"
    project_name: str = Field(default="", max_length=200)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        try:
            return validate_public_url(v)
        except ValidationError as e:
            raise ValueError(str(e))

    @field_validator("mode")
    @classmethod
    def check_mode(cls, v: str) -> str:
        from utils.crawler import CRAWL_MODES
        if v not in CRAWL_MODES:
            raise ValueError(f"Invalid crawl mode: {v}")
        return v


class ReportRequest(BaseModel):
    project_name: str = Field(default="UX Analysis", max_length=200)

    @field_validator("project_name", mode="before")
    @classmethod
    def truncate(cls, v):
        v = _strip(v) or "UX Analysis"
        return v[:200]


def format_errors(exc: PydanticValidationError) -> List[str]:
    """Flatten pydantic errors into "field: message" strings."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_form(model: Type[ModelT], data: dict) -> ModelT:
    """Validate a form dict, raising the project ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        messages = format_errors(e)
        raise ValidationError(messages[0] if messages else "Invalid input", errors=messages) from e


def _lines(text: Optional[str]) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def build_persona(name: str = "", description: str = "", goals: str = "",
                  pain_points: str = "") -> Optional[Dict[str, Any]]:
    """
    Validated persona for journey maps, from free-text form fields.

    Goals and pain points are entered one per line. Returns None when no
    persona was entered at all.
    """
    if not any(_lines(value) for value in (name, description, goals, pain_points)):
        return None
    persona = validate_form(PersonaForm, {
        "name": name,
        "description": description,
        "goals": _lines(goals),
        "pain_points": _lines(pain_points),
    })
    return persona.model_dump()


def build_study_data(title: str = "", problem_statement: str = "", solution_goal: str = "",
                     observations: str = "", observation_type: str = "note") -> Optional[Dict[str, Any]]:
    """Study plan and observations (one per line) that ground a research diagram."""
    study_data: Dict[str, Any] = {}
    if any(_lines(value) for value in (title, problem_statement, solution_goal)):
        plan = validate_form(StudyPlanForm, {
            "title": title,
            "problem_statement": problem_statement,
            "solution_goal": solution_goal,
        })
        study_data["study_plan"] = plan.model_dump()

    items = []
    for number, line in enumerate(_lines(observations), start=1):
        try:
            items.append(validate_form(ObservationForm, {"observation_type": observation_type, "content": line}))
        except ValidationError as e:
            raise ValidationError(f"Observation {number}: {e}", errors=e.errors) from e
    if items:
        study_data["observations"] = [item.model_dump() for item in items]
    return study_data or None
