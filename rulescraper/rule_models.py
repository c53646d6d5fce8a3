# rulescraper/rule_models.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Pydantic Models for Rule Definitions ---

class Transform(BaseModel):
    match: str = Field(..., description="Regular expression applied to the scalar value.")
    split: bool = Field(default=False,
                        description="Split the value on every match, emitting each non-empty fragment.")
    replace: str = Field(default="",
                         description="Replacement template. Capture groups are referenced as $1, ${1} or ${name}.")


class ExtractionRule(BaseModel):
    name: str = Field(..., description="Key the extracted value is stored under (unique among siblings).")
    selector: str = Field(default="", description="CSS selector scoping matches within the current scope.")
    attr: str = Field(default="", description="Attribute to read instead of the element text.")
    multiple: bool = Field(default=False, description="Collect every match instead of the first one.")
    download: bool = Field(default=False,
                           description="The extracted values are URLs to download after extraction.")
    visit: bool = Field(default=False,
                        description="Follow the URL in 'attr' and evaluate children against the fetched page.")
    flatten: bool = Field(default=False, description="Collapse one level of list nesting.")
    save_dir: str = Field(default="", description="Download directory template, may hold placeholder tokens.")
    children: List['ExtractionRule'] = Field(default_factory=list,
                                             description="Sub-rules evaluated per matched element.")
    transforms: List[Transform] = Field(default_factory=list,
                                        description="Ordered regex rewrites applied to leaf values.")

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("rule name must not be empty")
        return value

    @field_validator('children')
    @classmethod
    def validate_unique_children(cls, value: List['ExtractionRule']) -> List['ExtractionRule']:
        names = [child.name for child in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"child rule names must be unique, duplicated: {duplicates}")
        return value

    @property
    def is_leaf(self) -> bool:
        return not self.children


class Mapping(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    object: str = Field(default="", description="Named output bucket; empty writes to the shared root.")
    key: str = Field(default="", description="Source locator, e.g. 'items', 'a.b', 'list.#.id', 'a[0]'.")
    to: str = Field(default="", description="Destination path, e.g. 'payload.ids' or 'payload.first[0]'.")
    format: Dict[str, Any] = Field(default_factory=dict,
                                   description="Template object merged into every produced element.")
    is_array: bool = Field(default=False, alias="isArray")
    is_object: bool = Field(default=False, alias="isObject")
    array_obj_map: List['Mapping'] = Field(default_factory=list, alias="arrayObjMap")


class SiteRules(BaseModel):
    host: str = ""
    rules: List[ExtractionRule] = Field(default_factory=list)
    mapping: List[Mapping] = Field(default_factory=list)


ExtractionRule.model_rebuild()
Mapping.model_rebuild()


def rules_to_data(rules: List[ExtractionRule]) -> List[Dict[str, Any]]:
    return [rule.model_dump(mode="json", exclude_defaults=True) for rule in rules]


def mappings_to_data(mappings: List[Mapping]) -> List[Dict[str, Any]]:
    return [m.model_dump(mode="json", by_alias=True, exclude_defaults=True) for m in mappings]


def site_rules_to_data(site: SiteRules) -> Dict[str, Any]:
    return {
        "host": site.host,
        "rules": rules_to_data(site.rules),
        "mapping": mappings_to_data(site.mapping),
    }


def transforms_or_default(transforms: Optional[List[Transform]], default_data) -> List[Transform]:
    if transforms:
        return list(transforms)
    return [Transform(**t) for t in default_data]
