"""kubestream: live log tailing across Kubernetes namespaces."""

__version__ = "0.1.0"
