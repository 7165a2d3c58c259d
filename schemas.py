"""
Database Schemas for the catalog admin backend

Product is the persisted catalog entity (collection "products"). The store is
non-strict: unknown fields sent by the admin frontend are kept as-is.
The remaining models describe request bodies and pipeline results.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

import config


class ProductStatus(str, Enum):
    draft = "draft"
    active = "active"
    inactive = "inactive"


class FieldKind(str, Enum):
    """Primitive kinds produced by schema inference for ad-hoc imports."""
    String = "String"
    Number = "Number"
    Boolean = "Boolean"
    Date = "Date"
    EmbeddedObjectArray = "EmbeddedObjectArray"
    StringArray = "StringArray"


class ProductImage(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    url: Optional[str] = Field(None, description="Public image URL")
    publicId: Optional[str] = Field(None, description="Opaque storage id")
    alt: Optional[str] = Field(None, description="Alt text")


class Product(BaseModel):
    model_config = ConfigDict(extra="allow", str_strip_whitespace=True, use_enum_values=True)

    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    sku: Optional[str] = Field(None, description="SKU / Identifier")
    brand: Optional[str] = Field(None, description="Brand name")
    category: Optional[str] = Field(None, description="Category key")
    subCategory: Optional[str] = Field(None, description="Sub category")
    tags: List[str] = Field(default_factory=list, description="Search tags")
    price: Optional[float] = Field(None, ge=0, description="Price")
    salePrice: Optional[float] = Field(None, ge=0, description="Discounted price")
    stock: float = Field(0, ge=0, description="Units in stock")
    status: ProductStatus = Field(ProductStatus.active, validate_default=True, description="Publication status")
    isFeatured: bool = Field(False, description="Shown in featured listings")
    features: List[str] = Field(default_factory=list, description="Bullet point features")
    thumbnail: Optional[ProductImage] = None
    images: List[ProductImage] = Field(default_factory=list)
    specifications: Dict[str, Any] = Field(default_factory=dict, description="Free-form specifications")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")


class SeedMetadata(BaseModel):
    importedAt: datetime
    originalCategoryName: str


class SeedProduct(BaseModel):
    """Product record derived from the frontend data.json during reconciliation."""
    name: Optional[str] = None
    brand: str = ""
    price: float = 0
    salePrice: Optional[float] = None
    category: str
    categoryName: str
    subcategory: str = ""
    description: str = ""
    features: List[Any] = Field(default_factory=list)
    image_links: List[Any] = Field(default_factory=list)
    colors: List[Any] = Field(default_factory=list)
    available_sizes: List[Any] = Field(default_factory=list)
    rating: float = 0
    stock: float = 50
    isBestseller: bool = False
    source: str = "seed"
    legacyId: Any
    slug: Optional[str] = None
    metadata: SeedMetadata


class ImportRequest(BaseModel):
    collectionName: str = config.DEFAULT_IMPORT_COLLECTION


class ImportResult(BaseModel):
    success: bool = True
    collectionName: str
    documentCount: int
    schema_: Dict[str, FieldKind] = Field(default_factory=dict, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class SeedResult(BaseModel):
    upserted: int
    modified: int
    deleted: int
    total: int


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
