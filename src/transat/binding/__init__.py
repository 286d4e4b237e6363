"""Provider scope and consumer accessor."""

from .provider import StateHandle, TransatBinding, TransatProvider, create_transat

__all__ = ["StateHandle", "TransatBinding", "TransatProvider", "create_transat"]
