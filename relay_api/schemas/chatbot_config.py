from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class BusinessInfo(BaseModel):
    name: Optional[str] = None
    domain: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    guarantee: Optional[str] = None


class ServicePlan(BaseModel):
    name: str
    price: Union[int, float, str]
    currency: Optional[str] = None
    period: Optional[str] = None
    badge: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    savings: Optional[str] = None


class FaqItem(BaseModel):
    q: str = Field(validation_alias=AliasChoices("q", "question"))
    a: str = Field(validation_alias=AliasChoices("a", "answer"))


class ChatbotConfig(BaseModel):
    """Structured per-tenant prompt configuration.

    Accepts both the camelCase keys stored by the admin tooling and the
    snake_case field names. Optional sections stay ``None``/empty when absent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity: Optional[str] = None
    role: List[str] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    business_info: Optional[BusinessInfo] = Field(
        default=None,
        validation_alias=AliasChoices("businessInfo", "business_info", "business"),
    )
    service_plans: List[ServicePlan] = Field(
        default_factory=list,
        validation_alias=AliasChoices("servicePlans", "service_plans", "services"),
    )
    faq: List[FaqItem] = Field(default_factory=list)
    business_hours: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("businessHours", "business_hours"),
    )
    allowed_origins: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedOrigins", "allowed_origins"),
    )

    def is_empty(self) -> bool:
        return not (
            self.identity
            or self.role
            or self.rules
            or self.business_info
            or self.service_plans
            or self.faq
            or self.business_hours
        )
