# crudwizard/connectors/manifest_connector.py

import logging
from typing import Any, List, Optional

import requests
from pydantic import TypeAdapter

from crudwizard.config.settings import Settings
from crudwizard.wizard_engine.errors import SourceUnavailableError
from crudwizard.wizard_engine.models import EntityManifest, ManifestRoutes, PermissionManifest
from crudwizard.wizard_engine.sources.base import ManifestSource

logger = logging.getLogger(__name__)

SOURCE_NAME = "manifest"

# Entities served by the stand-in catalogue when the service cannot be used.
FALLBACK_ENTITY_IDS = ("Customers", "Products", "Orders", "Invoices")

_manifest_list_adapter = TypeAdapter(List[EntityManifest])


def build_fallback_manifest(entity_id: str) -> EntityManifest:
    """
    Synthesizes a minimal manifest for an entity: the id doubles as name and
    table, with REST routes, the four CRUD permissions and no declared fields.

    Having no fields, the result does not pass `EntityManifest.validate_model()`;
    it only locates the table. Every column of that table is then reported as
    missing from the manifest, and `is_fallback` lets callers flag the run.
    """
    route = f"/api/{entity_id.lower()}"
    return EntityManifest(
        entity_id=entity_id,
        entity_name=entity_id,
        module="Default",
        table_name=entity_id,
        database_schema="dbo",
        system_code=1,
        function_code=1,
        routes=ManifestRoutes(
            list_=f"{route}/list",
            get_by_id=f"{route}/{{id}}",
            create=route,
            update=f"{route}/{{id}}",
            delete=f"{route}/{{id}}",
        ),
        permissions=[
            PermissionManifest(permission_type="Read", allowed_roles=["User"]),
            PermissionManifest(permission_type="Create", allowed_roles=["Admin"]),
            PermissionManifest(permission_type="Update", allowed_roles=["Admin"]),
            PermissionManifest(permission_type="Delete", allowed_roles=["Admin"]),
        ],
        fields=[],
        is_fallback=True,
    )


class ManifestConnector(ManifestSource):
    """
    HTTP client for the manifest service.

    Every failure (service not configured, non-2xx answer, network error or
    unreadable payload) degrades to the fallback manifest, unless the
    connector is strict, in which case SourceUnavailableError is raised.
    """
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None, strict: Optional[bool] = None):
        self._base_url = (settings.manifest_api_base_url or "").rstrip("/")
        self.timeout = settings.manifest_api_timeout_seconds
        self.strict = settings.manifest_strict if strict is None else strict
        self.session = session or requests.Session()
        logger.info("Manifest connector initialized with base URL: %s", self._base_url or "<unset>")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url) and "localhost" not in self._base_url

    def _degrade(self, reason: str, fallback: Any) -> Any:
        if self.strict:
            raise SourceUnavailableError(SOURCE_NAME, reason)
        logger.warning("%s; using fallback manifest data.", reason)
        return fallback

    def _get_json(self, path: str) -> Any:
        response = self.session.get(f"{self._base_url}{path}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_entity_manifest(self, entity_id: str) -> EntityManifest:
        logger.info("Fetching manifest for entity: %s", entity_id)
        if not self.is_configured:
            return self._degrade("Manifest API is not configured", build_fallback_manifest(entity_id))

        try:
            payload = self._get_json(f"/api/manifesto/entidades/{entity_id}")
            if not payload:
                return self._degrade(f"Empty manifest returned for '{entity_id}'", build_fallback_manifest(entity_id))
            manifest = EntityManifest.model_validate(payload)
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching manifest for entity %s: %s", entity_id, e)
            return self._degrade(f"Manifest for '{entity_id}' unavailable", build_fallback_manifest(entity_id))

        logger.info("Manifest fetched for entity: %s", entity_id)
        return manifest

    def get_all_manifests(self) -> List[EntityManifest]:
        fallback = [build_fallback_manifest(entity_id) for entity_id in FALLBACK_ENTITY_IDS]
        if not self.is_configured:
            return self._degrade("Manifest API is not configured", fallback)

        try:
            manifests = _manifest_list_adapter.validate_python(self._get_json("/api/manifesto/entidades") or [])
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching manifests: %s", e)
            return self._degrade("Manifest list unavailable", fallback)

        logger.info("Fetched %d manifests.", len(manifests))
        return manifests

    def get_manifests_by_module(self, module: str) -> List[EntityManifest]:
        fallback = [
            manifest for manifest in (build_fallback_manifest(entity_id) for entity_id in FALLBACK_ENTITY_IDS)
            if manifest.module == module
        ]
        if not self.is_configured:
            return self._degrade("Manifest API is not configured", fallback)

        try:
            manifests = _manifest_list_adapter.validate_python(self._get_json(f"/api/manifesto/modulos/{module}") or [])
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching manifests of module %s: %s", module, e)
            return self._degrade(f"Manifests of module '{module}' unavailable", fallback)

        logger.info("Fetched %d manifests for module %s.", len(manifests), module)
        return manifests

    def has_permission(self, entity_id: str, permission_type: str) -> bool:
        try:
            manifest = self.get_entity_manifest(entity_id)
        except SourceUnavailableError as e:
            logger.error("Permission check for %s failed: %s", entity_id, e)
            return False

        # No declared permissions means nothing is granted.
        wanted = permission_type.lower()
        return any(p.permission_type.lower() == wanted for p in manifest.permissions)

    def test_connection(self) -> bool:
        if not self.is_configured:
            logger.warning("Manifest API is not configured; connection test skipped.")
            return True

        try:
            response = self.session.get(f"{self._base_url}/health", timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Manifest API connection test failed: %s", e)
            return False

        logger.info("Manifest API connection test: %s", "OK" if response.ok else "FAILED")
        return response.ok
