"""Shared primitives for filevault components."""
