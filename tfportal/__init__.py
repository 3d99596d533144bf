"""Terraform web portal: turns infrastructure form submissions into main.tf."""

__version__ = "0.1.0"
