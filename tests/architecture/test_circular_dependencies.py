import ast
import importlib
import pathlib

import mongo_adapter
import pytest

PACKAGE_DIR = pathlib.Path(mongo_adapter.__file__).parent

# Package modules each module may import. Only the connection layer and
# the adapter import Motor.
ALLOWED_IMPORTS = {
    'exceptions': set(),
    'entity': set(),
    'query': {'exceptions'},
    'options': {'exceptions'},
    'schema': {'entity', 'exceptions', 'query'},
    'connection': {'options', 'exceptions'},
    'base': {'entity', 'exceptions', 'options', 'query', 'schema'},
    'adapter': {'base', 'connection', 'entity', 'exceptions', 'options', 'query', 'schema'},
    'registry': {'base', 'exceptions'},
}

MOTOR_MODULES = {'connection', 'adapter'}


def package_imports(module):
    """Return (package submodules, top-level third-party names) a module imports."""
    tree = ast.parse((PACKAGE_DIR / f'{module}.py').read_text())
    internal, external = set(), set()
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.module:
            names = [node.module]
        elif isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        else:
            continue
        for name in names:
            parts = name.split('.')
            if parts[0] == 'mongo_adapter':
                internal.add(parts[1] if len(parts) > 1 else '')
            else:
                external.add(parts[0])
    return internal, external


def test_every_module_is_layered():
    """Test the layering table covers every module in the package"""
    modules = {path.stem for path in PACKAGE_DIR.glob('*.py')} - {'__init__'}
    assert modules == set(ALLOWED_IMPORTS)


@pytest.mark.parametrize('module', sorted(ALLOWED_IMPORTS))
def test_module_layering(module):
    """Test modules import only from lower layers of the package"""
    internal, _ = package_imports(module)
    unexpected = internal - ALLOWED_IMPORTS[module]
    assert not unexpected, f'mongo_adapter.{module} imports {sorted(unexpected)}'


@pytest.mark.parametrize('module', sorted(set(ALLOWED_IMPORTS) - MOTOR_MODULES))
def test_driver_free_modules(module):
    """Test translation and remapping code does not depend on Motor"""
    _, external = package_imports(module)
    assert 'motor' not in external


def test_circular_dependencies():
    """Test if modules can be imported without circular dependencies"""
    order = ['exceptions', 'entity', 'query', 'options', 'schema',
             'connection', 'base', 'adapter', 'registry']
    for module in order:
        importlib.import_module(f'mongo_adapter.{module}')
    importlib.import_module('mongo_adapter')


def test_public_names_resolve():
    for name in mongo_adapter.__all__:
        assert hasattr(mongo_adapter, name), name


if __name__ == '__main__':
    __import__('pytest').main([__file__])
