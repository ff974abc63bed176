"""排序偏好模型

序列化形态使用 tagKey / tagSortRules 字段名，与展示层记录格式一致。
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import SortDirection


class TagSortRule(BaseModel):
    """单条标签排序规则 -- order 越小优先级越高"""

    model_config = ConfigDict(populate_by_name=True)

    tag_key: str = Field(alias="tagKey", min_length=1, description="标签 key")
    direction: SortDirection = Field(default=SortDirection.ASC, description="排序方向")
    order: int = Field(default=0, description="优先级，越小越先应用")


class SortPreferences(BaseModel):
    """排序偏好（单例配置）

    tag_sort_rules 始终按 order 升序保存，tag_key 在集合内唯一。
    """

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(default=False, description="是否启用标签排序")
    tag_sort_rules: list[TagSortRule] = Field(
        default_factory=list,
        alias="tagSortRules",
        description="排序规则列表",
    )

    @model_validator(mode="after")
    def _check_rules(self) -> "SortPreferences":
        keys = [rule.tag_key for rule in self.tag_sort_rules]
        if len(keys) != len(set(keys)):
            raise ValueError("tag_sort_rules contain duplicate tag keys")
        self.tag_sort_rules.sort(key=lambda rule: rule.order)
        return self

    def active_rules(self) -> list[TagSortRule]:
        """返回生效中的规则：未启用时为空列表"""
        if not self.enabled:
            return []
        return list(self.tag_sort_rules)

    def find_rule(self, tag_key: str) -> TagSortRule | None:
        """按 tag_key 查找规则"""
        for rule in self.tag_sort_rules:
            if rule.tag_key == tag_key:
                return rule
        return None
