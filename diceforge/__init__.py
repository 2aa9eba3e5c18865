"""Affix and dice-effect resolution engine for Diceforge."""
