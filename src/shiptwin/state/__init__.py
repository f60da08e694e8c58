"""State layer.

This package owns the live twin state: the keyed store every mutation goes
through, the typed events announcing each change, and the notifier that
fans those events out to observers.
"""
