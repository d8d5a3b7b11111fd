# ==============================================================================
# SPORTSLINE - Núcleo del backend de la tienda deportiva
# ==============================================================================
# Pedidos (creación, estados, cancelación con devolución de stock) y
# cifrado híbrido AES-256-GCM + RSA-OAEP para datos sensibles.
# ==============================================================================

__version__ = '1.0.0'
