"""
Provisioner — dependency-ordered, failure-isolated machine provisioning.
"""

__version__ = "0.1.0"
