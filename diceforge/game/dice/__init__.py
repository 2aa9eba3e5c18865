"""Dice, their affixes, and the engine that applies them positionally."""
