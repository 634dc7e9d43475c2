"""Verify all modules can be imported without errors."""


def test_core_module_imports():
    """Import core modules to catch bad import paths."""
    import catalog_import_api.main
    import catalog_import_api.models
    import catalog_import_api.config
    import catalog_import_api.utils
    import catalog_import_api.auth
    import catalog_import_api.exceptions


def test_api_imports():
    """Import API route modules."""
    import catalog_import_api.api.bulk_import_routes


def test_service_imports():
    """Import service modules."""
    import catalog_import_api.services.bulk_import
    import catalog_import_api.services.reconciliation
    import catalog_import_api.services.catalog_client
    import catalog_import_api.services.image_preview
    import catalog_import_api.services.retry


def test_parser_imports():
    """Import parser modules."""
    import catalog_import_api.parsers.base
    import catalog_import_api.parsers.models
    import catalog_import_api.parsers.excel_parser
