"""
Identity Toolkit endpoint resolution, including the local Auth emulator.
"""

from enum import Enum
from typing import Optional

from admin_core.errors import InvalidArgumentError


ID_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/{version}/projects/{project_id}"
ID_TOOLKIT_EMULATOR_URL = "http://{host}/identitytoolkit.googleapis.com/{version}/projects/{project_id}"


class IdToolkitVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"


def is_emulator_host(emulator_host: Optional[str]) -> bool:
    return bool(emulator_host and emulator_host.strip())


def get_id_toolkit_host(
    project_id: Optional[str],
    version: IdToolkitVersion = IdToolkitVersion.V2,
    tenant_id: Optional[str] = None,
    emulator_host: Optional[str] = None,
) -> str:
    """Base URL for Identity Toolkit calls scoped to a project (and tenant).

    ``emulator_host`` is the already resolved ``FIREBASE_AUTH_EMULATOR_HOST``
    value; when set, calls are routed to the emulator over plain HTTP.
    """
    if not project_id or not project_id.strip():
        raise InvalidArgumentError("Must provide a project ID to resolve")
    if tenant_id is not None and not tenant_id:
        raise InvalidArgumentError("Tenant ID must not be empty.")

    version = IdToolkitVersion(version)
    if is_emulator_host(emulator_host):
        url = ID_TOOLKIT_EMULATOR_URL.format(
            host=emulator_host.strip(), version=version.value, project_id=project_id
        )
    else:
        url = ID_TOOLKIT_URL.format(version=version.value, project_id=project_id)

    if tenant_id:
        url = f"{url}/tenants/{tenant_id}"
    return url
