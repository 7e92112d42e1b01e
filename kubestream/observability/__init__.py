"""Diagnostics for kubestream (structured logging)."""
