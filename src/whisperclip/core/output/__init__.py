from .clipboard import Clipboard

__all__ = ["Clipboard"]
