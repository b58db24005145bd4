from importlib import import_module

modules = [
    'auth',
    'users',
    'settings',
    'billing',
    'conversions',
    'files',
    'qdata_clean',
    'workflows',
    'libraries',
    'benchmarks',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules
