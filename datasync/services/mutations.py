from __future__ import annotations

import json
import logging
import re
from typing import Callable, Mapping, Optional, Sequence

from datasync.errors import TransformerConfigError
from datasync.schemas.transformers import (
    SOURCE_CONFIG_TYPES,
    GenerateEmailType,
    InvalidEmailAction,
    JobMapping,
    JobMappingTransformer,
    TransformerSource,
)
from datasync.sqlmanager.shared import ColumnInfo

logger = logging.getLogger(__name__)

NULL_EXPRESSION = "null"
DEFAULT_EXPRESSION = '"DEFAULT"'

# Generators that accept an optional max_length bound taken from the column.
_LENGTH_AWARE_GENERATORS: dict[TransformerSource, str] = {
    TransformerSource.GENERATE_CITY: "generate_city",
    TransformerSource.GENERATE_FIRST_NAME: "generate_first_name",
    TransformerSource.GENERATE_FULL_ADDRESS: "generate_full_address",
    TransformerSource.GENERATE_FULL_NAME: "generate_full_name",
    TransformerSource.GENERATE_LAST_NAME: "generate_last_name",
    TransformerSource.GENERATE_STREET_ADDRESS: "generate_street_address",
    TransformerSource.GENERATE_USERNAME: "generate_username",
}

# Generators that take no arguments at all.
_PLAIN_GENERATORS: dict[TransformerSource, str] = {
    TransformerSource.GENERATE_BOOL: "generate_bool",
    TransformerSource.GENERATE_INT64_PHONE_NUMBER: "generate_int64_phone_number",
    TransformerSource.GENERATE_SHA256HASH: "generate_sha256hash",
    TransformerSource.GENERATE_SSN: "generate_ssn",
    TransformerSource.GENERATE_UNIXTIMESTAMP: "generate_unixtimestamp",
    TransformerSource.GENERATE_UTCTIMESTAMP: "generate_utctimestamp",
    TransformerSource.GENERATE_ZIPCODE: "generate_zipcode",
}

# Transformers of an existing value that only take preserve_length.
_PRESERVE_LENGTH_TRANSFORMERS: dict[TransformerSource, tuple[str, bool]] = {
    TransformerSource.TRANSFORM_E164_PHONE_NUMBER: ("transform_e164_phone_number", True),
    TransformerSource.TRANSFORM_FIRST_NAME: ("transform_first_name", True),
    TransformerSource.TRANSFORM_FULL_NAME: ("transform_full_name", True),
    TransformerSource.TRANSFORM_INT64_PHONE_NUMBER: ("transform_int64_phone_number", False),
    TransformerSource.TRANSFORM_LAST_NAME: ("transform_last_name", True),
    TransformerSource.TRANSFORM_PHONE_NUMBER: ("transform_phone_number", True),
}

_SKIPPED_SOURCES = {TransformerSource.PASSTHROUGH, TransformerSource.UNSPECIFIED}
_JS_NAME_PATTERN = re.compile(r"[^A-Za-z0-9_]")


def should_process_column(transformer: Optional[JobMappingTransformer]) -> bool:
    return transformer is not None and transformer.source not in _SKIPPED_SOURCES


def quote_identifier(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)


def column_path(column: str) -> str:
    return f"root.{quote_identifier(column)}"


def column_value(column: str) -> str:
    return f"this.{quote_identifier(column)}"


def convert_string_slice_to_string(values: Sequence[str]) -> str:
    return "[" + ",".join(quote_identifier(value) for value in values) + "]"


def resolve_user_defined_mappings(
    mappings: Sequence[JobMapping],
    resolve: Optional[Callable[[JobMappingTransformer], JobMappingTransformer]],
) -> list[JobMapping]:
    """Swap user defined transformer references for the definitions they point at.

    ``resolve`` is only called for mappings that reference a user defined
    transformer, and is required as soon as one of them does.
    """

    resolved: list[JobMapping] = []
    for mapping in mappings:
        transformer = mapping.transformer
        if transformer is None or transformer.source != TransformerSource.USER_DEFINED:
            resolved.append(mapping)
            continue
        if resolve is None:
            raise TransformerConfigError(
                f"Column {mapping.column_name} uses a user defined transformer but no transformer lookup is configured."
            )
        definition = resolve(transformer)
        if definition.source == TransformerSource.USER_DEFINED:
            raise TransformerConfigError(
                f"User defined transformer on column {mapping.column_name} resolved to another user defined transformer."
            )
        resolved.append(mapping.model_copy(update={"transformer": definition}))
    return resolved


def build_mutation_configs(mappings: Sequence[JobMapping], column_info_map: Mapping[str, ColumnInfo]) -> str:
    """Compile row mutations for every mapping, newline joined in the order given."""

    mutations: list[str] = []
    for mapping in mappings:
        transformer = mapping.transformer
        if not should_process_column(transformer):
            continue
        if transformer.source == TransformerSource.TRANSFORM_JAVASCRIPT:
            continue
        expression = compute_mutation_function(mapping, column_info_map.get(mapping.column_name))
        mutations.append(f"{column_path(mapping.column_name)} = {expression}")
    if mutations:
        logger.debug("Compiled %s column mutations", len(mutations))
    return "\n".join(mutations)


def build_javascript_code(mappings: Sequence[JobMapping]) -> str:
    """Combine every javascript transformer into a single code block (empty when there are none)."""

    functions: list[str] = []
    outputs: list[str] = []
    for mapping in mappings:
        transformer = mapping.transformer
        if transformer is None or transformer.source != TransformerSource.TRANSFORM_JAVASCRIPT:
            continue
        config = _require_config(mapping.column_name, transformer)
        if not config.code:
            continue

        name = _js_function_name(mapping.column_name)
        key = quote_identifier(mapping.column_name)
        functions.append(f"function {name}(value, input){{\n  {config.code}\n}};")
        outputs.append(f"output[{key}] = {name}(input[{key}], input);")

    if not functions:
        return ""
    return (
        "(() => {\n"
        + "\n".join(functions)
        + "\nconst input = benthos.v0_msg_as_structured();\n"
        + "const output = { ...input };\n"
        + "\n".join(outputs)
        + "\nbenthos.v0_msg_set_structured(output);\n"
        + "})();"
    )


def compute_mutation_function(mapping: JobMapping, column_info: Optional[ColumnInfo]) -> str:
    """Render the mapping language expression for one column's transformer."""

    transformer = mapping.transformer
    if transformer is None:
        raise TransformerConfigError(f"Column {mapping.column_name} has no transformer to compile.")

    column = mapping.column_name
    source = transformer.source
    max_length = column_info.character_maximum_length if column_info and column_info.has_length_bound else None

    if source == TransformerSource.GENERATE_NULL:
        return NULL_EXPRESSION
    if source == TransformerSource.GENERATE_DEFAULT:
        return DEFAULT_EXPRESSION
    if source in (TransformerSource.USER_DEFINED, TransformerSource.TRANSFORM_JAVASCRIPT) or source in _SKIPPED_SOURCES:
        raise TransformerConfigError(f"Transformer {source.value} on column {column} does not compile to a mutation.")

    if source in _PLAIN_GENERATORS:
        _require_config(column, transformer, optional=True)
        return _call(_PLAIN_GENERATORS[source])
    if source in _LENGTH_AWARE_GENERATORS:
        _require_config(column, transformer, optional=True)
        return _call(_LENGTH_AWARE_GENERATORS[source], ("max_length", max_length))

    config = _require_config(column, transformer)

    if source in _PRESERVE_LENGTH_TRANSFORMERS:
        name, length_aware = _PRESERVE_LENGTH_TRANSFORMERS[source]
        return _call(
            name,
            ("value", column_value(column)),
            ("preserve_length", _bool(config.preserve_length)),
            ("max_length", max_length if length_aware else None),
        )

    if source == TransformerSource.GENERATE_EMAIL:
        return _call(
            "generate_email",
            ("max_length", max_length),
            ("email_type", quote_identifier(_email_type(config.email_type))),
        )
    if source == TransformerSource.TRANSFORM_EMAIL:
        return _call(
            "transform_email",
            ("value", column_value(column)),
            ("preserve_domain", _bool(config.preserve_domain)),
            ("preserve_length", _bool(config.preserve_length)),
            ("excluded_domains", convert_string_slice_to_string(config.excluded_domains)),
            ("max_length", max_length),
            ("email_type", quote_identifier(_email_type(config.email_type))),
            ("invalid_email_action", quote_identifier(_invalid_email_action(config.invalid_email_action))),
        )
    if source == TransformerSource.GENERATE_CARD_NUMBER:
        return _call("generate_card_number", ("valid_luhn", _bool(config.valid_luhn)))
    if source == TransformerSource.GENERATE_E164_PHONE_NUMBER:
        return _call("generate_e164_phone_number", ("min", config.min), ("max", config.max))
    if source == TransformerSource.GENERATE_FLOAT64:
        return _call(
            "generate_float64",
            ("randomize_sign", _bool(config.randomize_sign)),
            ("min", _float(config.min)),
            ("max", _float(config.max)),
            ("precision", config.precision),
        )
    if source == TransformerSource.GENERATE_GENDER:
        return _call("generate_gender", ("abbreviate", _bool(config.abbreviate)), ("max_length", max_length))
    if source == TransformerSource.GENERATE_INT64:
        return _call(
            "generate_int64",
            ("randomize_sign", _bool(config.randomize_sign)),
            ("min", config.min),
            ("max", config.max),
        )
    if source == TransformerSource.GENERATE_STATE:
        return _call("generate_state", ("generate_full_name", _bool(config.generate_full_name)))
    if source == TransformerSource.GENERATE_COUNTRY:
        return _call("generate_country", ("generate_full_name", _bool(config.generate_full_name)))
    if source == TransformerSource.GENERATE_STRING_PHONE_NUMBER:
        return _call("generate_string_phone_number", ("min", config.min), ("max", config.max))
    if source == TransformerSource.GENERATE_RANDOM_STRING:
        minimum, maximum = clamp_length_bounds(config.min, config.max, max_length)
        return _call("generate_string", ("min", minimum), ("max", maximum))
    if source == TransformerSource.GENERATE_UUID:
        return _call("generate_uuid", ("include_hyphens", _bool(config.include_hyphens)))
    if source == TransformerSource.GENERATE_CATEGORICAL:
        return _call("generate_categorical", ("categories", quote_identifier(config.categories)))
    if source == TransformerSource.TRANSFORM_FLOAT64:
        return _call(
            "transform_float64",
            ("value", column_value(column)),
            ("randomization_range_min", _float(config.randomization_range_min)),
            ("randomization_range_max", _float(config.randomization_range_max)),
        )
    if source == TransformerSource.TRANSFORM_INT64:
        return _call(
            "transform_int64",
            ("value", column_value(column)),
            ("randomization_range_min", config.randomization_range_min),
            ("randomization_range_max", config.randomization_range_max),
        )
    if source == TransformerSource.TRANSFORM_STRING:
        return _call(
            "transform_string",
            ("value", column_value(column)),
            ("preserve_length", _bool(config.preserve_length)),
            ("max_length", max_length),
        )
    if source == TransformerSource.TRANSFORM_CHARACTER_SCRAMBLE:
        regex = config.user_provided_regex
        return _call(
            "transform_character_scramble",
            ("value", column_value(column)),
            ("user_provided_regex", quote_identifier(regex) if regex else None),
        )

    raise TransformerConfigError(f"Unsupported transformer {source.value} on column {column}.")


def clamp_length_bounds(minimum: int, maximum: int, max_length: Optional[int]) -> tuple[int, int]:
    """Bound a generated string length by the column's character limit, when it has one."""

    if max_length is None or max_length <= 0:
        return minimum, maximum
    maximum = min(maximum, max_length)
    minimum = min(minimum, maximum)
    return minimum, maximum


def _require_config(column: str, transformer: JobMappingTransformer, *, optional: bool = False):
    expected = SOURCE_CONFIG_TYPES.get(transformer.source)
    config = transformer.config
    if config is None:
        if optional and expected is not None:
            return expected()
        raise TransformerConfigError(
            f"Transformer {transformer.source.value} on column {column} is missing its configuration."
        )
    if expected is None or not isinstance(config, expected):
        raise TransformerConfigError(
            f"Transformer {transformer.source.value} on column {column} has a mismatched"
            f" {getattr(config, 'kind', type(config).__name__)} configuration."
        )
    return config


def _call(name: str, *arguments: tuple[str, object]) -> str:
    rendered = ",".join(f"{key}:{value}" for key, value in arguments if value is not None)
    return f"{name}({rendered})"


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _float(value: float) -> str:
    return f"{value:f}"


def _email_type(value: Optional[GenerateEmailType]) -> str:
    return (value or GenerateEmailType.UUID_V4).value


def _invalid_email_action(value: Optional[InvalidEmailAction]) -> str:
    return (value or InvalidEmailAction.REJECT).value


def _js_function_name(column: str) -> str:
    return f"fn_{_JS_NAME_PATTERN.sub('_', column)}"

