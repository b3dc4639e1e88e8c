from .site import Site
from .assigned_ip import AssignedIP
from .ip_check import IPCheck

__all__ = [
    "Site",
    "AssignedIP",
    "IPCheck",
]
