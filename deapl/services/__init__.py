# deapl/services/__init__.py
"""
Service layer for deapl.

Services are lazy-loaded so importing deapl does not pull in Playwright.
Use explicit imports like:
    from deapl.services.translator import Translator
"""

# Lazy-loaded services via __getattr__
_LAZY_IMPORTS = {
    'BrowserSession': 'browser_session',
    'PageDriver': 'page_driver',
    'TaskQueue': 'task_queue',
    'Translator': 'translator',
    'LoopThreadExecutor': 'translator',
    'SelectorTable': 'selectors',
    'get_selector_table': 'selectors',
    'register_selector_table': 'selectors',
}

# Submodules that can be accessed via __getattr__ (for patching support)
_SUBMODULES = {'browser_session', 'page_driver', 'task_queue', 'translator', 'selectors', 'exceptions'}


def __getattr__(name: str):
    """Lazy-load service modules on first access."""
    import importlib
    if name in _SUBMODULES:
        return importlib.import_module(f'.{name}', __package__)
    if name in _LAZY_IMPORTS:
        module_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(f'.{module_name}', __package__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'BrowserSession',
    'PageDriver',
    'TaskQueue',
    'Translator',
    'LoopThreadExecutor',
    'SelectorTable',
    'get_selector_table',
    'register_selector_table',
]
