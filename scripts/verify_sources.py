# scripts/verify_sources.py

import logging

from sqlalchemy.exc import SQLAlchemyError

from crudwizard.config.settings import settings
from crudwizard.connectors.manifest_connector import ManifestConnector
from crudwizard.connectors.sql_connector import SqlConnector


def verify_database() -> bool:
    print("--- Verifying database connection ---")
    try:
        with SqlConnector(settings) as connector:
            connector.ping()
            inspector = connector.get_inspector()
            tables = inspector.get_table_names(schema=settings.default_schema_name)
            print(f"✅ Connection successful! Found {len(tables)} tables in '{settings.default_schema_name}'.")
            return True
    except SQLAlchemyError as e:
        print("🔥 Database Error: Failed to connect or inspect the database.")
        print(f"   Details: {e}")
        print("   Troubleshooting: Is the server running? Are .env settings correct?")
    except ConnectionError as e:
        print(f"🔥 Connection Management Error: {e}")
    return False


def verify_manifest_api() -> bool:
    print("--- Verifying manifest API ---")
    connector = ManifestConnector(settings)
    if not connector.is_configured:
        print(f"⚠️ Manifest API not configured ({connector.base_url or '<unset>'}); fallback manifests will be used.")
        return True

    ok = connector.test_connection()
    print(f"✅ {connector.base_url} is healthy." if ok else f"🔥 {connector.base_url} did not answer /health.")
    return ok


def main() -> int:
    logging.basicConfig(level=settings.log_level)
    database_ok = verify_database()
    manifest_ok = verify_manifest_api()
    return 0 if database_ok and manifest_ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
