"""
Request ingress: builds record payloads and enqueues them.
"""

from .producer import IngressProducer, build_payload

__all__ = [
    "IngressProducer",
    "build_payload",
]
