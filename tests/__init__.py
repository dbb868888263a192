"""storage-engine test suite.

Test organization:
- unit/test_option_schema.py, test_backend_definition.py, test_backend_registry.py: configuration
- unit/test_uri.py, test_path_validator.py, test_resolver.py: identifier resolution
- unit/test_*_adapter.py, test_adapter_factory.py: adapters
- unit/test_engine.py: the StorageEngine facade
- unit/test_config_loader.py, test_cli.py, test_logging.py: host-side tooling
"""
