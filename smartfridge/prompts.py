"""Prompt construction for recipe generation.

The system prompt fixes the output contract (a bare JSON array of recipe
objects) and the user prompt carries the inventory, the preferences and the
cooking-quality rules the model is asked to follow.
"""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Sequence

from .models import Category, Ingredient, UserPreferences


RECIPE_COUNT = 3

NO_MUST_USE_SENTENCE = "无必须包含的食材。"


class PromptPair(NamedTuple):
    system_prompt: str
    user_prompt: str


SYSTEM_PROMPT_TEMPLATE = """你是一位极度注重细节的五星级烹饪导师，目标是让从未下过厨的新手也能一次成功。
请根据用户现有的食材和偏好，推荐 {count} 道美味且成功率高的菜肴。
只返回一个 JSON 数组，不要使用 Markdown 代码块 (```json)，也不要在数组前后添加任何文字。"""

USER_PROMPT_TEMPLATE = """用户现有食材（按存储位置分类）：
{inventory}

特定要求：
{requirements}

生成规则（严格执行）：
1. 步骤详情化：每个步骤都是一句完整的祈使句，遵循“步骤 = 行为 + 条件 + 时间 + 判断”。
   - 行为：具体做什么，如快速滑炒、小火慢炖。
   - 条件：火候、油温或前置状态，如保持中小火、待油温微热。
   - 时间：量化的时间，如约30秒、焖煮15分钟。
   - 判断：视觉、嗅觉或触觉上的完成标准，如肉丝变白断生、闻到浓烈蒜香。
   错误示范：“炒肉丝。”
   正确示范：“开大火将锅烧至冒微烟，倒入冷油，立即下入腌制好的肉丝快速滑炒约30秒，至肉丝变白且根根分明。”
2. 存储状态感知：如果用到冷冻食材，第一步必须包含解冻说明（如提前冷藏解冻或微波炉解冻）。
3. 避坑指南：failurePoints 必须列出极易出错的细节，例如“火太大时蒜末会在5秒内变焦发苦”。
4. JSON 结构（数组）：
[
  {{
    "name": "菜名",
    "description": "一句话介绍亮点",
    "difficulty": "简单/中等/困难",
    "cookingTime": "例如：20分钟",
    "mainIngredientsUsed": ["食材1", "食材2"],
    "missingIngredients": ["缺少但必须的食材"],
    "steps": ["步骤1", "步骤2", "步骤3"],
    "failurePoints": ["避坑1", "避坑2"]
  }}
]"""


def group_by_category(ingredients: Sequence[Ingredient]) -> Dict[Category, List[str]]:
    """Map each category with members to its ingredient names, in declaration order."""

    grouped: Dict[Category, List[str]] = {}
    for category in Category:
        names = [item.name for item in ingredients if item.category is category]
        if names:
            grouped[category] = names
    return grouped


def render_inventory(ingredients: Sequence[Ingredient]) -> str:
    return "\n".join(
        f"{category.value}: {', '.join(names)}"
        for category, names in group_by_category(ingredients).items()
    )


def must_use_names(ingredients: Sequence[Ingredient], preferences: UserPreferences) -> List[str]:
    # Unknown ids resolve to nothing.
    return [item.name for item in ingredients if item.id in preferences.mustUseIngredientIds]


def render_must_use(ingredients: Sequence[Ingredient], preferences: UserPreferences) -> str:
    names = must_use_names(ingredients, preferences)
    if not names:
        return NO_MUST_USE_SENTENCE
    return f"必须包含的食材: {', '.join(names)}"


def render_notes(preferences: UserPreferences) -> str:
    notes = (preferences.additionalNotes or "").strip()
    if not notes:
        return ""
    return f'用户的额外要求/备注: "{preferences.additionalNotes}"'


def build_prompts(ingredients: Sequence[Ingredient], preferences: UserPreferences) -> PromptPair:
    requirements = [
        f"- 菜系风格：{preferences.cuisine}",
        f"- 口味偏好：{preferences.taste}",
        f"- {render_must_use(ingredients, preferences)}",
    ]
    notes = render_notes(preferences)
    if notes:
        requirements.append(f"- {notes}")

    system_prompt = SYSTEM_PROMPT_TEMPLATE.format(count=RECIPE_COUNT)
    user_prompt = USER_PROMPT_TEMPLATE.format(
        inventory=render_inventory(ingredients),
        requirements="\n".join(requirements),
    )
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


__all__ = [
    "NO_MUST_USE_SENTENCE",
    "PromptPair",
    "RECIPE_COUNT",
    "build_prompts",
    "group_by_category",
    "must_use_names",
    "render_inventory",
    "render_must_use",
]
