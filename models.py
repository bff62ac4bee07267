from pydantic import BaseModel, ConfigDict, Field


class ProductRecord(BaseModel):
    """A bookmarked product link from a Raindrop collection."""

    model_config = ConfigDict(populate_by_name=True)

    id: str  # "rd-<raindrop _id>"
    name: str
    brand: str = ""
    price_czk: int | None = Field(default=None, alias="priceCZK")  # filled by the scrape path
    image: str = ""
    tags: list[str] = []
    url: str | None = None
    collection: int | None = Field(default=None, alias="_collection")


class VariantOption(BaseModel):
    """A purchasable option (colour, style, ...) read from embedded SKU data."""

    id: str
    name: str
    available: bool = True


class ScrapeResult(BaseModel):
    """Everything the storefront needs from a single product page."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    images: list[str] = []
    variants: list[VariantOption] = []
    sizes: list[str] = []
    size_chart_image: str | None = Field(default=None, alias="sizeChartImage")
    buy_price_cny: float | None = Field(default=None, alias="buyPriceCNY")
    price_czk: int | None = Field(default=None, alias="priceCZK")


class ProductList(BaseModel):
    products: list[ProductRecord]


class ErrorBody(BaseModel):
    error: str
