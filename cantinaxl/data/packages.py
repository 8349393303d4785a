# cantinaxl/data/packages.py
"""Meal packages sold on the storefront, as registered in Brevo."""

PACKAGES = [
    {
        "id": "personalizado",
        "name": "Personalizado",
        "description": "Elige tu propio número de comidas y días de entrega",
        "meals": 0,
        "price": 0,
    },
    {
        "id": "toquecito-xl",
        "name": "Toquecito XL",
        "description": "Cubre 3 días de alimentación variada.",
        "meals": 3,
        "price": 29.99,
    },
    {
        "id": "semana-sabrosa",
        "name": "Semana Sabrosa",
        "description": "Ideal para una semana de tranquilidad.",
        "meals": 5,
        "price": 49.99,
    },
    {
        "id": "combo-completo-xl",
        "name": "Combo Completo XL",
        "description": "Cobertura completa, sin preocupaciones.",
        "meals": 7,
        "price": 69.99,
    },
]

def catalog_products(image_base_url: str) -> list:
    base = image_base_url.rstrip("/")
    return [{**package, "imageUrl": f"{base}/images/packages/{package['id']}.jpg"} for package in PACKAGES]
