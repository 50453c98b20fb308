"""QuickBooks Online API type definitions."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QuickBooksEntity(BaseModel):
    """Base for QuickBooks entities; unknown fields are kept as returned."""

    model_config = ConfigDict(extra="allow")

    Id: Optional[str] = Field(None, description="QuickBooks entity identifier")
    SyncToken: Optional[str] = Field(
        None, description="Version token required for updates"
    )


class QuickBooksRef(BaseModel):
    """Reference to another QuickBooks entity."""

    value: str = Field(..., description="Referenced entity ID")
    name: Optional[str] = Field(None, description="Referenced entity name")


class QuickBooksEmail(BaseModel):
    Address: str = Field(..., description="Email address")


class QuickBooksPhone(BaseModel):
    FreeFormNumber: str = Field(..., description="Phone number")


class QuickBooksProduct(QuickBooksEntity):
    """QuickBooks Item (product or service)."""

    Name: str = Field(..., description="Item name")
    QtyOnHand: Optional[float] = Field(None, description="Quantity on hand")
    UnitPrice: Optional[float] = Field(None, description="Sales price")
    IncomeAccountRef: Optional[QuickBooksRef] = Field(
        None, description="Income account for sales"
    )
    Type: Optional[str] = Field(None, description="Inventory, NonInventory, Service")
    Sku: Optional[str] = Field(None, description="Stock keeping unit")


class QuickBooksCustomer(QuickBooksEntity):
    DisplayName: str = Field(..., description="Customer display name")
    PrimaryEmailAddr: Optional[QuickBooksEmail] = None
    PrimaryPhone: Optional[QuickBooksPhone] = None
    Balance: Optional[float] = Field(None, description="Open balance")


class QuickBooksInvoice(QuickBooksEntity):
    DocNumber: Optional[str] = Field(None, description="Invoice number")
    TxnDate: Optional[str] = Field(None, description="Transaction date")
    CustomerRef: Optional[QuickBooksRef] = None
    TotalAmt: Optional[float] = Field(None, description="Invoice total")
    Balance: Optional[float] = Field(None, description="Amount still due")


class QuickBooksPayment(QuickBooksEntity):
    TxnDate: Optional[str] = Field(None, description="Payment date")
    CustomerRef: Optional[QuickBooksRef] = None
    TotalAmt: Optional[float] = Field(None, description="Payment amount")
    UnappliedAmt: Optional[float] = Field(None, description="Amount not applied")


class QuickBooksCompanyInfo(QuickBooksEntity):
    CompanyName: Optional[str] = Field(None, description="Company name")
    Country: Optional[str] = Field(None, description="Company country")
