"""Application layer: control plane access, catalog, lifecycle and error boundary."""
