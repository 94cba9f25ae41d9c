"""
Kubernetes cluster validation

Point-in-time health assessment of a cluster: per-domain status
classification, ingress endpoint probing and a consolidated delivery report.
"""

__version__ = "1.0.0"
