"""IVC - Parameter lifecycle, step inputs, folding and verification.

Submodules are imported directly (e.g. ``from ivc.driver import IVCDriver``);
primitives depends on ivc.errors, so this package keeps no eager imports.
"""
