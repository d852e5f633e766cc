from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class CanonicalModule(BaseModel):
    type: str
    scope: Literal["local", "global"] = "local"
    orderIndex: int = 0
    locked: bool = False
    props: Optional[Dict[str, Any]] = None
    overrides: Optional[Dict[str, Any]] = None
    globalSlug: Optional[str] = None


class CanonicalPostFields(BaseModel):
    type: str
    locale: str
    slug: str
    title: str
    status: Literal[
        "draft", "review", "scheduled", "published", "private", "protected", "archived"
    ] = "draft"
    excerpt: Optional[str] = None
    metaTitle: Optional[str] = None
    metaDescription: Optional[str] = None
    canonicalUrl: Optional[str] = None
    robotsJson: Optional[Dict[str, Any]] = None
    jsonldOverrides: Optional[Dict[str, Any]] = None


class TranslationRef(BaseModel):
    id: str
    locale: str


class CanonicalPost(BaseModel):
    """Portable, versioned representation of a post and its modules."""

    version: Literal[1]
    post: CanonicalPostFields
    modules: List[CanonicalModule] = Field(default_factory=list)
    translations: List[TranslationRef] = Field(default_factory=list)

    @field_validator("modules")
    @classmethod
    def global_modules_need_slug(cls, modules: List[CanonicalModule]) -> List[CanonicalModule]:
        for module in modules:
            if module.scope == "global" and not module.globalSlug:
                raise ValueError(f"global module '{module.type}' requires globalSlug")
        return modules
