"""Infrastructure adapters: Kubernetes access, downstream clusters and logging."""
