"""Sandboxed access to extended attributes and Spotlight metadata.

Entry points: ``config.load_config``, ``security.PathGuard``,
``infra.CommandMediator``, ``services.XattrService``, ``services.SpotlightService``.
"""

__version__ = "0.1.0"
