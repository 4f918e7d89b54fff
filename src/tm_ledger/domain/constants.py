"""Fixed funds-in catalogue. Prices are informational; checkout happens elsewhere."""

from src.tm_ledger.domain.models import TokenPackage

TOKEN_PACKAGES: dict[str, TokenPackage] = {
    "starter": TokenPackage(id="starter", name="Starter Pack", tokens=250, price_cents=499),
    "popular": TokenPackage(id="popular", name="Popular Pack", tokens=1000, price_cents=999),
    "whale": TokenPackage(id="whale", name="Whale Pack", tokens=2500, price_cents=1499),
}
