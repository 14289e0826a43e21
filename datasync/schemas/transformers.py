from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TransformerSource(str, Enum):
    UNSPECIFIED = "unspecified"
    PASSTHROUGH = "passthrough"
    GENERATE_NULL = "generate_null"
    GENERATE_DEFAULT = "generate_default"
    GENERATE_EMAIL = "generate_email"
    TRANSFORM_EMAIL = "transform_email"
    GENERATE_BOOL = "generate_bool"
    GENERATE_CARD_NUMBER = "generate_card_number"
    GENERATE_CITY = "generate_city"
    GENERATE_E164_PHONE_NUMBER = "generate_e164_phone_number"
    GENERATE_FIRST_NAME = "generate_first_name"
    GENERATE_FLOAT64 = "generate_float64"
    GENERATE_FULL_ADDRESS = "generate_full_address"
    GENERATE_FULL_NAME = "generate_full_name"
    GENERATE_GENDER = "generate_gender"
    GENERATE_INT64_PHONE_NUMBER = "generate_int64_phone_number"
    GENERATE_INT64 = "generate_int64"
    GENERATE_LAST_NAME = "generate_last_name"
    GENERATE_SHA256HASH = "generate_sha256hash"
    GENERATE_SSN = "generate_ssn"
    GENERATE_STATE = "generate_state"
    GENERATE_STREET_ADDRESS = "generate_street_address"
    GENERATE_STRING_PHONE_NUMBER = "generate_string_phone_number"
    GENERATE_RANDOM_STRING = "generate_random_string"
    GENERATE_UNIXTIMESTAMP = "generate_unixtimestamp"
    GENERATE_USERNAME = "generate_username"
    GENERATE_UTCTIMESTAMP = "generate_utctimestamp"
    GENERATE_UUID = "generate_uuid"
    GENERATE_ZIPCODE = "generate_zipcode"
    GENERATE_CATEGORICAL = "generate_categorical"
    GENERATE_COUNTRY = "generate_country"
    TRANSFORM_E164_PHONE_NUMBER = "transform_e164_phone_number"
    TRANSFORM_FIRST_NAME = "transform_first_name"
    TRANSFORM_FLOAT64 = "transform_float64"
    TRANSFORM_FULL_NAME = "transform_full_name"
    TRANSFORM_INT64_PHONE_NUMBER = "transform_int64_phone_number"
    TRANSFORM_INT64 = "transform_int64"
    TRANSFORM_LAST_NAME = "transform_last_name"
    TRANSFORM_PHONE_NUMBER = "transform_phone_number"
    TRANSFORM_STRING = "transform_string"
    TRANSFORM_CHARACTER_SCRAMBLE = "transform_character_scramble"
    TRANSFORM_JAVASCRIPT = "transform_javascript"
    USER_DEFINED = "user_defined"


class GenerateEmailType(str, Enum):
    UUID_V4 = "uuidv4"
    FULL_NAME = "fullname"
    ANY = "any"


class InvalidEmailAction(str, Enum):
    REJECT = "reject"
    NULL = "null"
    PASSTHROUGH = "passthrough"
    GENERATE = "generate"


class _Config(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PassthroughConfig(_Config):
    kind: Literal["passthrough"] = "passthrough"


class NullConfig(_Config):
    kind: Literal["null"] = "null"


class GenerateDefaultConfig(_Config):
    kind: Literal["generate_default"] = "generate_default"


class GenerateEmailConfig(_Config):
    kind: Literal["generate_email"] = "generate_email"
    email_type: Optional[GenerateEmailType] = None


class TransformEmailConfig(_Config):
    kind: Literal["transform_email"] = "transform_email"
    preserve_domain: bool = False
    preserve_length: bool = False
    excluded_domains: List[str] = Field(default_factory=list)
    email_type: Optional[GenerateEmailType] = None
    invalid_email_action: Optional[InvalidEmailAction] = None


class GenerateBoolConfig(_Config):
    kind: Literal["generate_bool"] = "generate_bool"


class GenerateCardNumberConfig(_Config):
    kind: Literal["generate_card_number"] = "generate_card_number"
    valid_luhn: bool = False


class GenerateCityConfig(_Config):
    kind: Literal["generate_city"] = "generate_city"


class GenerateE164PhoneNumberConfig(_Config):
    kind: Literal["generate_e164_phone_number"] = "generate_e164_phone_number"
    min: int
    max: int


class GenerateFirstNameConfig(_Config):
    kind: Literal["generate_first_name"] = "generate_first_name"


class GenerateFloat64Config(_Config):
    kind: Literal["generate_float64"] = "generate_float64"
    randomize_sign: bool = False
    min: float
    max: float
    precision: int


class GenerateFullAddressConfig(_Config):
    kind: Literal["generate_full_address"] = "generate_full_address"


class GenerateFullNameConfig(_Config):
    kind: Literal["generate_full_name"] = "generate_full_name"


class GenerateGenderConfig(_Config):
    kind: Literal["generate_gender"] = "generate_gender"
    abbreviate: bool = False


class GenerateInt64PhoneNumberConfig(_Config):
    kind: Literal["generate_int64_phone_number"] = "generate_int64_phone_number"


class GenerateInt64Config(_Config):
    kind: Literal["generate_int64"] = "generate_int64"
    randomize_sign: bool = False
    min: int
    max: int


class GenerateLastNameConfig(_Config):
    kind: Literal["generate_last_name"] = "generate_last_name"


class GenerateSha256HashConfig(_Config):
    kind: Literal["generate_sha256hash"] = "generate_sha256hash"


class GenerateSsnConfig(_Config):
    kind: Literal["generate_ssn"] = "generate_ssn"


class GenerateStateConfig(_Config):
    kind: Literal["generate_state"] = "generate_state"
    generate_full_name: bool = False


class GenerateStreetAddressConfig(_Config):
    kind: Literal["generate_street_address"] = "generate_street_address"


class GenerateStringPhoneNumberConfig(_Config):
    kind: Literal["generate_string_phone_number"] = "generate_string_phone_number"
    min: int
    max: int


class GenerateRandomStringConfig(_Config):
    kind: Literal["generate_random_string"] = "generate_random_string"
    min: int
    max: int


class GenerateUnixTimestampConfig(_Config):
    kind: Literal["generate_unixtimestamp"] = "generate_unixtimestamp"


class GenerateUsernameConfig(_Config):
    kind: Literal["generate_username"] = "generate_username"


class GenerateUtcTimestampConfig(_Config):
    kind: Literal["generate_utctimestamp"] = "generate_utctimestamp"


class GenerateUuidConfig(_Config):
    kind: Literal["generate_uuid"] = "generate_uuid"
    include_hyphens: bool = True


class GenerateZipcodeConfig(_Config):
    kind: Literal["generate_zipcode"] = "generate_zipcode"


class GenerateCategoricalConfig(_Config):
    kind: Literal["generate_categorical"] = "generate_categorical"
    categories: str


class GenerateCountryConfig(_Config):
    kind: Literal["generate_country"] = "generate_country"
    generate_full_name: bool = False


class TransformE164PhoneNumberConfig(_Config):
    kind: Literal["transform_e164_phone_number"] = "transform_e164_phone_number"
    preserve_length: bool = False


class TransformFirstNameConfig(_Config):
    kind: Literal["transform_first_name"] = "transform_first_name"
    preserve_length: bool = False


class TransformFloat64Config(_Config):
    kind: Literal["transform_float64"] = "transform_float64"
    randomization_range_min: float
    randomization_range_max: float


class TransformFullNameConfig(_Config):
    kind: Literal["transform_full_name"] = "transform_full_name"
    preserve_length: bool = False


class TransformInt64PhoneNumberConfig(_Config):
    kind: Literal["transform_int64_phone_number"] = "transform_int64_phone_number"
    preserve_length: bool = False


class TransformInt64Config(_Config):
    kind: Literal["transform_int64"] = "transform_int64"
    randomization_range_min: int
    randomization_range_max: int


class TransformLastNameConfig(_Config):
    kind: Literal["transform_last_name"] = "transform_last_name"
    preserve_length: bool = False


class TransformPhoneNumberConfig(_Config):
    kind: Literal["transform_phone_number"] = "transform_phone_number"
    preserve_length: bool = False


class TransformStringConfig(_Config):
    kind: Literal["transform_string"] = "transform_string"
    preserve_length: bool = False


class TransformCharacterScrambleConfig(_Config):
    kind: Literal["transform_character_scramble"] = "transform_character_scramble"
    user_provided_regex: Optional[str] = None


class TransformJavascriptConfig(_Config):
    kind: Literal["transform_javascript"] = "transform_javascript"
    code: str = ""


class UserDefinedTransformerConfig(_Config):
    kind: Literal["user_defined"] = "user_defined"
    id: str


TransformerConfig = Annotated[
    Union[
        PassthroughConfig,
        NullConfig,
        GenerateDefaultConfig,
        GenerateEmailConfig,
        TransformEmailConfig,
        GenerateBoolConfig,
        GenerateCardNumberConfig,
        GenerateCityConfig,
        GenerateE164PhoneNumberConfig,
        GenerateFirstNameConfig,
        GenerateFloat64Config,
        GenerateFullAddressConfig,
        GenerateFullNameConfig,
        GenerateGenderConfig,
        GenerateInt64PhoneNumberConfig,
        GenerateInt64Config,
        GenerateLastNameConfig,
        GenerateSha256HashConfig,
        GenerateSsnConfig,
        GenerateStateConfig,
        GenerateStreetAddressConfig,
        GenerateStringPhoneNumberConfig,
        GenerateRandomStringConfig,
        GenerateUnixTimestampConfig,
        GenerateUsernameConfig,
        GenerateUtcTimestampConfig,
        GenerateUuidConfig,
        GenerateZipcodeConfig,
        GenerateCategoricalConfig,
        GenerateCountryConfig,
        TransformE164PhoneNumberConfig,
        TransformFirstNameConfig,
        TransformFloat64Config,
        TransformFullNameConfig,
        TransformInt64PhoneNumberConfig,
        TransformInt64Config,
        TransformLastNameConfig,
        TransformPhoneNumberConfig,
        TransformStringConfig,
        TransformCharacterScrambleConfig,
        TransformJavascriptConfig,
        UserDefinedTransformerConfig,
    ],
    Field(discriminator="kind"),
]

# Config record expected for each source. Sources missing here carry no config.
SOURCE_CONFIG_TYPES: dict[TransformerSource, type[BaseModel]] = {
    TransformerSource.GENERATE_NULL: NullConfig,
    TransformerSource.GENERATE_DEFAULT: GenerateDefaultConfig,
    TransformerSource.GENERATE_EMAIL: GenerateEmailConfig,
    TransformerSource.TRANSFORM_EMAIL: TransformEmailConfig,
    TransformerSource.GENERATE_BOOL: GenerateBoolConfig,
    TransformerSource.GENERATE_CARD_NUMBER: GenerateCardNumberConfig,
    TransformerSource.GENERATE_CITY: GenerateCityConfig,
    TransformerSource.GENERATE_E164_PHONE_NUMBER: GenerateE164PhoneNumberConfig,
    TransformerSource.GENERATE_FIRST_NAME: GenerateFirstNameConfig,
    TransformerSource.GENERATE_FLOAT64: GenerateFloat64Config,
    TransformerSource.GENERATE_FULL_ADDRESS: GenerateFullAddressConfig,
    TransformerSource.GENERATE_FULL_NAME: GenerateFullNameConfig,
    TransformerSource.GENERATE_GENDER: GenerateGenderConfig,
    TransformerSource.GENERATE_INT64_PHONE_NUMBER: GenerateInt64PhoneNumberConfig,
    TransformerSource.GENERATE_INT64: GenerateInt64Config,
    TransformerSource.GENERATE_LAST_NAME: GenerateLastNameConfig,
    TransformerSource.GENERATE_SHA256HASH: GenerateSha256HashConfig,
    TransformerSource.GENERATE_SSN: GenerateSsnConfig,
    TransformerSource.GENERATE_STATE: GenerateStateConfig,
    TransformerSource.GENERATE_STREET_ADDRESS: GenerateStreetAddressConfig,
    TransformerSource.GENERATE_STRING_PHONE_NUMBER: GenerateStringPhoneNumberConfig,
    TransformerSource.GENERATE_RANDOM_STRING: GenerateRandomStringConfig,
    TransformerSource.GENERATE_UNIXTIMESTAMP: GenerateUnixTimestampConfig,
    TransformerSource.GENERATE_USERNAME: GenerateUsernameConfig,
    TransformerSource.GENERATE_UTCTIMESTAMP: GenerateUtcTimestampConfig,
    TransformerSource.GENERATE_UUID: GenerateUuidConfig,
    TransformerSource.GENERATE_ZIPCODE: GenerateZipcodeConfig,
    TransformerSource.GENERATE_CATEGORICAL: GenerateCategoricalConfig,
    TransformerSource.GENERATE_COUNTRY: GenerateCountryConfig,
    TransformerSource.TRANSFORM_E164_PHONE_NUMBER: TransformE164PhoneNumberConfig,
    TransformerSource.TRANSFORM_FIRST_NAME: TransformFirstNameConfig,
    TransformerSource.TRANSFORM_FLOAT64: TransformFloat64Config,
    TransformerSource.TRANSFORM_FULL_NAME: TransformFullNameConfig,
    TransformerSource.TRANSFORM_INT64_PHONE_NUMBER: TransformInt64PhoneNumberConfig,
    TransformerSource.TRANSFORM_INT64: TransformInt64Config,
    TransformerSource.TRANSFORM_LAST_NAME: TransformLastNameConfig,
    TransformerSource.TRANSFORM_PHONE_NUMBER: TransformPhoneNumberConfig,
    TransformerSource.TRANSFORM_STRING: TransformStringConfig,
    TransformerSource.TRANSFORM_CHARACTER_SCRAMBLE: TransformCharacterScrambleConfig,
    TransformerSource.TRANSFORM_JAVASCRIPT: TransformJavascriptConfig,
}


class JobMappingTransformer(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: TransformerSource = TransformerSource.UNSPECIFIED
    config: Optional[TransformerConfig] = None


class JobMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_name: str
    table_name: str
    column_name: str
    transformer: Optional[JobMappingTransformer] = None


class UserDefinedTransformer(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    data_type: Optional[str] = None
    source: TransformerSource
    config: Optional[TransformerConfig] = None
