"""
Part plugins: externally supplied content providers bound to page regions.
"""

from app.pageserver.modules.parts.contract import PartHandle, PartPlugin
from app.pageserver.modules.parts.loaders import ChainPartLoader, FactoryPartLoader, ImportPartLoader, PartLoader
from app.pageserver.modules.parts.registry import PartRegistry, PartStaticServer

__all__ = [
    "ChainPartLoader",
    "FactoryPartLoader",
    "ImportPartLoader",
    "PartHandle",
    "PartLoader",
    "PartPlugin",
    "PartRegistry",
    "PartStaticServer",
]
