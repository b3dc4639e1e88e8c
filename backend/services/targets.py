"""
Operator selection helpers.

Turns what an operator picked (a subnet, a host, or a site) into the
``ipRange`` value understood by GET /api/status, and groups sites by their
``<group>.`` prefix for the site picker.
"""

from typing import Dict, Iterable, List

from schemas import AssignedIPResponse, SiteGroup, SiteGroupEntry, SiteResponse
from services.sweep import SINGLE_HOST_MARKER, InvalidTargetError


def resolve_target(option: str) -> str:
    """
    Map an operator selection to an ``ipRange`` value.

    - ``"10.0.0.0"`` (four octets ending in 0) sweeps the /24: ``"10.0.0"``
    - ``"10.0.0.7"`` probes that host only: ``"num10.0.0.7"``
    - ``"10.0.0"`` is already a prefix and passes through
    """
    value = (option or "").strip()
    if not value:
        raise InvalidTargetError("No address or subnet selected")

    if value.startswith(SINGLE_HOST_MARKER):
        return value

    parts = value.split(".")
    if len(parts) == 4:
        if parts[3] == "0":
            return ".".join(parts[:3])
        return f"{SINGLE_HOST_MARKER}{value}"
    return value


def site_prefix(sitename: str) -> str:
    return sitename.split(".", 1)[0]


def site_label(sitename: str) -> str:
    parts = sitename.split(".", 1)
    return parts[1] if len(parts) > 1 and parts[1] else sitename


def group_sites(
    sites: Iterable[SiteResponse],
    assignments: Iterable[AssignedIPResponse],
) -> List[SiteGroup]:
    """
    Group sites by prefix, listing the IPs assigned to each site.

    Groups and sites keep the order they were first seen in.  Assignments
    without a site, or naming a site that does not exist, are skipped.
    """
    groups: Dict[str, SiteGroup] = {}
    entries: Dict[str, SiteGroupEntry] = {}

    for site in sites:
        prefix = site_prefix(site.sitename)
        group = groups.get(prefix)
        if group is None:
            group = SiteGroup(prefix=prefix)
            groups[prefix] = group
        entry = SiteGroupEntry(sitename=site.sitename, label=site_label(site.sitename))
        group.sites.append(entry)
        entries[site.sitename] = entry

    for assignment in assignments:
        if not assignment.sitename:
            continue
        entry = entries.get(assignment.sitename)
        if entry is not None:
            entry.ips.append(assignment.ipaddress)

    return list(groups.values())
