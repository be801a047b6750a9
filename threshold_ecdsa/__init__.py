"""Threshold ECDSA on secp256k1: GG18 key generation and signing, phase 7 blame, and coordination servers."""

__version__ = "0.1.0"