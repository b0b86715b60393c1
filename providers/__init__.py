# ============================================================================
# PROVIDERS MODULE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Provider exports
# PURPOSE: FaaS provider gateway
# CREATED: 10 OCT 2026
# ============================================================================
"""
FaaS Providers

Which runtimes are served by which FaaS provider is decided by the
ProviderRegistry. Node functions run on Fn Project.
"""

from providers.base import FaasProvider, APP_NAME_PREFIX
from providers.fn_project import FnProjectProvider, get_fn_project_url
from providers.registry import ProviderRegistry

__all__ = [
    "FaasProvider",
    "APP_NAME_PREFIX",
    "FnProjectProvider",
    "get_fn_project_url",
    "ProviderRegistry",
]
