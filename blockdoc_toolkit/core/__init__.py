"""Document core: model, commands, components and editing services.

Nothing in this package performs I/O or imports a UI toolkit.
"""
