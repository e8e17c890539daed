"""Static credit package catalogue."""

from litwick.schemas.payment import CreditPackage

_CREDIT_PACKAGES: tuple[CreditPackage, ...] = (
    CreditPackage(
        id="basic",
        name="Básico",
        description="Perfecto para empezar",
        credits=120,
        price=5,
        currency="USD",
    ),
    CreditPackage(
        id="standard",
        name="Estándar",
        description="Ideal para uso regular",
        credits=300,
        price=10,
        currency="USD",
        popular=True,
        discount=17,
    ),
    CreditPackage(
        id="premium",
        name="Premium",
        description="Para usuarios frecuentes",
        credits=600,
        price=18,
        currency="USD",
        discount=25,
    ),
    CreditPackage(
        id="max",
        name="Max",
        description="Máxima capacidad",
        credits=1500,
        price=40,
        currency="USD",
        discount=33,
    ),
)


def list_credit_packages() -> list[CreditPackage]:
    return [package.model_copy() for package in _CREDIT_PACKAGES]


def get_credit_package(package_id: str) -> CreditPackage | None:
    for package in _CREDIT_PACKAGES:
        if package.id == package_id:
            return package.model_copy()
    return None
