"""
Provisioning service — package re-exports.

    from hostprep.core.services.provision import STEPS, run_cleanup, proxy_scope
"""

from hostprep.core.services.provision.cleanup import run_cleanup  # noqa: F401
from hostprep.core.services.provision.detection import (  # noqa: F401
    is_musl_installed,
    is_sdkman_installed,
    is_upx_installed,
)
from hostprep.core.services.provision.privilege import (  # noqa: F401
    ensure_elevated,
    is_elevated,
)
from hostprep.core.services.provision.proxy import (  # noqa: F401
    ProxySettings,
    proxy_scope,
    with_proxy,
)
from hostprep.core.services.provision.steps import STEPS  # noqa: F401
