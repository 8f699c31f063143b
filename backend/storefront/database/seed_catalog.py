"""
Default catalog written to the local replica the first time it is read.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from storefront.models.product import Product, ProductCategory

SEED_TIMESTAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)

_IMG = "https://images.unsplash.com/{}?w=400&h=500&fit=crop&crop=center"


def default_catalog() -> List[Product]:
    """Return a fresh copy of the six seed products."""
    seed = [
        dict(
            id="1",
            name="Cyber Neon Jacket",
            description="Futuristic jacket with LED accents and holographic details. "
                        "Perfect for the cyberpunk aesthetic.",
            price=Decimal("299"),
            images=[
                _IMG.format("photo-1551698618-1dfe5d97d256"),
                _IMG.format("photo-1594633312681-425c7b97ccd1"),
                _IMG.format("photo-1578662996442-48f60103fc96"),
            ],
            category=ProductCategory.OUTERWEAR,
            sizes=["S", "M", "L", "XL"],
            colors=["Neon Pink", "Cyber Blue", "Electric Green"],
            in_stock=True,
            featured=True,
            model_3d="/models/cyber-jacket.glb",
        ),
        dict(
            id="2",
            name="Retro Wave Hoodie",
            description="Vintage-inspired hoodie with synthwave graphics and comfortable fit.",
            price=Decimal("189"),
            images=[
                _IMG.format("photo-1556821840-3a63f95609a7"),
                _IMG.format("photo-1578662996442-48f60103fc96"),
            ],
            category=ProductCategory.HOODIES,
            sizes=["S", "M", "L", "XL", "XXL"],
            colors=["Purple Haze", "Sunset Orange", "Midnight Black"],
            in_stock=True,
            featured=True,
            model_3d="/models/retro-hoodie.glb",
        ),
        dict(
            id="3",
            name="Holographic Pants",
            description="Iridescent pants that shift colors in different lighting conditions.",
            price=Decimal("249"),
            images=[
                _IMG.format("photo-1594633312681-425c7b97ccd1"),
                _IMG.format("photo-1551698618-1dfe5d97d256"),
            ],
            category=ProductCategory.BOTTOMS,
            sizes=["28", "30", "32", "34", "36"],
            colors=["Rainbow", "Silver Chrome", "Gold Prism"],
            in_stock=True,
            featured=False,
            model_3d="/models/holographic-pants.glb",
        ),
        dict(
            id="4",
            name="Digital Mesh Top",
            description="Transparent mesh top with embedded fiber optics for a futuristic look.",
            price=Decimal("159"),
            images=[
                _IMG.format("photo-1578662996442-48f60103fc96"),
                _IMG.format("photo-1556821840-3a63f95609a7"),
            ],
            category=ProductCategory.TOPS,
            sizes=["XS", "S", "M", "L"],
            colors=["Neon Blue", "Electric Pink", "Laser Green"],
            in_stock=True,
            featured=True,
            model_3d="/models/digital-mesh.glb",
        ),
        dict(
            id="5",
            name="Quantum Sneakers",
            description="Self-lacing sneakers with reactive LED soles and smart technology.",
            price=Decimal("399"),
            images=[
                _IMG.format("photo-1549298916-b41d501d3772"),
                _IMG.format("photo-1595950653106-6c9ebd614d3a"),
            ],
            category=ProductCategory.FOOTWEAR,
            sizes=["7", "8", "9", "10", "11", "12"],
            colors=["Void Black", "Plasma White", "Neon Fusion"],
            in_stock=True,
            featured=True,
            model_3d="/models/quantum-sneakers.glb",
        ),
        dict(
            id="6",
            name="Cyberpunk Visor",
            description="AR-enabled visor with heads-up display and advanced optics.",
            price=Decimal("599"),
            images=[
                _IMG.format("photo-1572635196237-14b3f281503f"),
                _IMG.format("photo-1583394838336-acd977736f90"),
            ],
            category=ProductCategory.ACCESSORIES,
            sizes=["One Size"],
            colors=["Chrome", "Matte Black", "Neon Accent"],
            in_stock=False,
            featured=False,
            model_3d="/models/cyberpunk-visor.glb",
        ),
    ]
    return [
        Product(created_at=SEED_TIMESTAMP, updated_at=SEED_TIMESTAMP, **fields)
        for fields in seed
    ]
