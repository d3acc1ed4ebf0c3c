from .rentals import rentals_bp
from .variants import variants_bp

__all__ = ["rentals_bp", "variants_bp"]
