"""Ingress layer.

Transports (HTTP, MQTT, in-process channel, simulation) translate their
own request shapes into :meth:`IngressAdapter.handle` calls and carry no
business logic of their own.
"""

from platenotify.ingress.adapter import IngressAdapter, IngressResponse, StatusCategory
from platenotify.ingress.admin import AdminAdapter
from platenotify.ingress.channel import MessageChannel
from platenotify.ingress.simulate import simulate_arrival

__all__ = ["AdminAdapter", "IngressAdapter", "IngressResponse", "MessageChannel", "StatusCategory", "simulate_arrival"]
