"""
Pydantic v2 schemas with strict input validation and lenient output serialization.

Architecture:
  - *Fields classes: pure field definitions, no validators.  Shared by both
    input (Create/Upsert) and output (Response) schemas.
  - *Create / *Upsert / *Delete classes: inherit from *Fields (or declare
    their own fields) and ADD strict validators so bad data is rejected
    before anything is written.
  - *Response classes: no validators, so any data already in the database
    serializes without crashing.

Wire names follow the inventory tables the operators already know
(``sitename``, ``ipaddress``, ``macaddress``, ...), so request and response
bodies stay flat lowercase keys.
"""

from datetime import datetime
from ipaddress import ip_address as parse_ip
from typing import List, Literal, Optional, Union
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Reusable validators ──────────────────────────────────────────────

MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")
SITENAME_RE = re.compile(r"^[A-Za-z0-9._\- ]+$")


def _validate_ipv4(value: str, field_name: str = "IP address") -> str:
    """Validate a dotted-quad IPv4 address string."""
    try:
        addr = parse_ip(value)
    except ValueError:
        raise ValueError(
            f"Invalid {field_name} '{value}'. "
            "Expected dotted-quad IPv4 (e.g. 192.168.1.10)"
        )
    if addr.version != 4:
        raise ValueError(f"Expected IPv4 {field_name}, got '{value}'")
    return value


def _validate_mac(value: str) -> str:
    """Validate a MAC address string in canonical colon-separated form."""
    if not MAC_RE.match(value):
        raise ValueError(
            f"Invalid MAC address '{value}'. "
            "Expected format XX:XX:XX:XX:XX:XX (6 pairs of hex digits)"
        )
    return value


def _validate_sitename(value: str) -> str:
    """Validate a site name string."""
    value = value.strip()
    if not value:
        raise ValueError("Site name must not be empty")
    if len(value) > 100:
        raise ValueError("Site name too long. Maximum 100 characters allowed")
    if not SITENAME_RE.match(value):
        raise ValueError(
            f"Invalid site name '{value}'. "
            "Use only letters, digits, spaces, dots, hyphens, and underscores"
        )
    return value


# ═══════════════════════════════════════════════════════════════════════
# SITE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class SiteFields(BaseModel):
    """Pure field definitions for sites.  No validators."""

    sitename: str
    sitefullname: Optional[str] = Field(None, max_length=255)


class SiteCreate(SiteFields):
    """Schema for upserting a site."""

    @field_validator("sitename")
    @classmethod
    def validate_sitename(cls, v: str) -> str:
        return _validate_sitename(v)


class SiteDelete(BaseModel):
    """Body of DELETE /api/site."""

    sitename: str

    @field_validator("sitename")
    @classmethod
    def validate_sitename(cls, v: str) -> str:
        return _validate_sitename(v)


class SiteResponse(SiteFields):
    """Schema for site responses."""

    model_config = ConfigDict(from_attributes=True)


class SiteGroupEntry(BaseModel):
    """One site inside a picker group, with the IPs assigned to it."""

    sitename: str
    label: str
    ips: List[str] = Field(default_factory=list)


class SiteGroup(BaseModel):
    """Sites sharing the same ``<group>.`` prefix."""

    prefix: str
    sites: List[SiteGroupEntry] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════
# SITE ASSIGNMENT SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class AssignedIPFields(BaseModel):
    """Pure field definitions for site assignments.  No validators."""

    ipaddress: str
    sitename: Optional[str] = None


class AssignedIPCreate(AssignedIPFields):
    """Schema for upserting a site assignment."""

    sitename: str

    @field_validator("ipaddress")
    @classmethod
    def validate_ipaddress(cls, v: str) -> str:
        return _validate_ipv4(v)

    @field_validator("sitename")
    @classmethod
    def validate_sitename(cls, v: str) -> str:
        return _validate_sitename(v)


class AssignedIPDelete(BaseModel):
    """Body of DELETE /api/assigned."""

    ipaddress: str

    @field_validator("ipaddress")
    @classmethod
    def validate_ipaddress(cls, v: str) -> str:
        return _validate_ipv4(v)


class AssignedIPResponse(AssignedIPFields):
    """Schema for site assignment responses."""
    pass


# ═══════════════════════════════════════════════════════════════════════
# DEVICE RECORD (IP CHECK) SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

class IPCheckUpsert(BaseModel):
    """
    Body of POST /api/ipcheck.

    Only ``ip`` is required.  Fields left out of the body are left untouched
    on an existing record, so the reconciliation view can send just the
    fields an operator changed.
    """

    ip: str
    sitename: Optional[str] = None
    macaddress: Optional[str] = None
    device: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = Field(None, max_length=5000)
    modifieddate: Optional[datetime] = None
    modifiedby: Optional[str] = Field(None, max_length=100)

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        return _validate_ipv4(v)

    @field_validator("sitename")
    @classmethod
    def validate_sitename(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_sitename(v)

    @field_validator("macaddress")
    @classmethod
    def validate_mac(cls, v: Optional[str]) -> Optional[str]:
        # Empty string clears the stored MAC
        if not v:
            return v
        return _validate_mac(v)


class DeviceIndexEntry(BaseModel):
    """A device record joined with its site assignment, keyed by ``ipaddress``."""

    ipaddress: str
    macaddress: Optional[str] = None
    device: Optional[str] = None
    location: Optional[str] = None
    comment: Optional[str] = None
    modifieddate: Optional[datetime] = None
    modifiedby: Optional[str] = None
    sitename: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════
# WRITE ACKNOWLEDGEMENTS
# ═══════════════════════════════════════════════════════════════════════

class WriteAck(BaseModel):
    """Acknowledgement returned by every write endpoint."""

    message: str
    affected_rows: Optional[int] = Field(None, alias="affectedRows")

    model_config = ConfigDict(populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════
# SWEEP / RECONCILIATION SCHEMAS
# ═══════════════════════════════════════════════════════════════════════

Latency = Union[float, Literal["unknown"]]


class ProbeResult(BaseModel):
    """
    Outcome of probing one address.

    ``time`` is the first reply's round-trip in ms, or ``"unknown"``.
    ``avg`` and ``packetLoss`` are integer strings, or ``"-"`` when the
    probe reported no value.  A probe that failed outright carries only
    ``ip`` and ``alive=False``.
    """

    ip: str
    alive: bool
    time: Optional[Latency] = None
    min: Optional[str] = None
    max: Optional[str] = None
    avg: Optional[str] = None
    packet_loss: Optional[str] = Field(None, alias="packetLoss")

    model_config = ConfigDict(populate_by_name=True)


class MergedRow(BaseModel):
    """One reconciliation row: live probe fields plus persisted device fields."""

    ip: str
    alive: bool
    time: Optional[Latency] = None
    min: Optional[str] = None
    max: Optional[str] = None
    avg: Optional[str] = None
    packet_loss: Optional[str] = Field(None, alias="packetLoss")
    macaddress: Optional[str] = None
    device: Optional[str] = None
    location: Optional[str] = None
    comment: Optional[str] = None
    modifieddate: Optional[datetime] = None
    modifiedby: Optional[str] = None
    sitename: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)
