"""Transports delivering metric record batches"""
from .base import Transport, TransportFactory

__all__ = ['Transport', 'TransportFactory']
