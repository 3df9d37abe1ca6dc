"""TableGate: permission-aware REST access to generator tables."""
