from pydantic import BaseModel


class StockSnapshot(BaseModel):
    symbol: str
    name: str | None = None
    regularMarketPrice: float
    regularMarketChange: float
    regularMarketChangePercent: float
    regularMarketDayHigh: float | None = None
    regularMarketDayLow: float | None = None
    regularMarketVolume: float | None = None
    marketCap: float | None = None
    regularMarketOpen: float


class Category(BaseModel):
    id: str
    slug: str
    title: str
    icon: str
    color: str
    description: str
    subCategories: dict[str, str] = {}
