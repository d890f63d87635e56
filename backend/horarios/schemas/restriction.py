from pydantic import AliasChoices, BaseModel, Field, field_validator

from horarios.models.restriction import RestrictionKind


class RestrictionBase(BaseModel):
    code: str = Field(min_length=1, max_length=50, validation_alias=AliasChoices("code", "codigo_restriccion"))
    description: str = Field(default="", max_length=4000, validation_alias=AliasChoices("description", "descripcion"))
    kind: RestrictionKind = Field(validation_alias=AliasChoices("kind", "tipo_aplicacion"))
    entity_id_1: int | None = Field(default=None, validation_alias=AliasChoices("entity_id_1", "entidad_id_1"))
    entity_id_2: int | None = Field(default=None, validation_alias=AliasChoices("entity_id_2", "entidad_id_2"))
    parameter_value: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("parameter_value", "valor_parametro"),
    )
    period_id: int | None = Field(default=None, validation_alias=AliasChoices("period_id", "periodo_aplicable"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "esta_activa"))

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class RestrictionCreate(RestrictionBase):
    pass


class RestrictionUpdate(BaseModel):
    code: str | None = Field(
        default=None,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("code", "codigo_restriccion"),
    )
    description: str | None = Field(default=None, max_length=4000, validation_alias=AliasChoices("description", "descripcion"))
    kind: RestrictionKind | None = Field(default=None, validation_alias=AliasChoices("kind", "tipo_aplicacion"))
    entity_id_1: int | None = Field(default=None, validation_alias=AliasChoices("entity_id_1", "entidad_id_1"))
    entity_id_2: int | None = Field(default=None, validation_alias=AliasChoices("entity_id_2", "entidad_id_2"))
    parameter_value: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("parameter_value", "valor_parametro"),
    )
    period_id: int | None = Field(default=None, validation_alias=AliasChoices("period_id", "periodo_aplicable"))
    is_active: bool | None = Field(default=None, validation_alias=AliasChoices("is_active", "esta_activa"))


class RestrictionOut(BaseModel):
    id: int
    code: str
    description: str
    kind: RestrictionKind
    severity: str
    entity_id_1: int | None
    entity_id_2: int | None
    parameter_value: float | None
    period_id: int | None
    is_active: bool
