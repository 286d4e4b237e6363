"""Textual host integration."""

from .controller import TextualStateHooks, TextualTransatAdapter

__all__ = ["TextualStateHooks", "TextualTransatAdapter"]
