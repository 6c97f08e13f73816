from pydantic import BaseModel, ConfigDict, Field


class DefaultsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    default_currency: str | None = Field(default=None, alias="defaultCurrency")
    default_account: str | None = Field(default=None, alias="defaultAccount")
    default_fund: str | None = Field(default=None, alias="defaultFund")


class InstructionRequest(BaseModel):
    instruction: str = Field(min_length=1)


class AccountRequest(BaseModel):
    name: str = Field(min_length=1)


class FundRequest(BaseModel):
    name: str = Field(min_length=1)


class StatusResponse(BaseModel):
    status: str
    detail: str | None = None
