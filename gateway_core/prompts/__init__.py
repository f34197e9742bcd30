"""提示词模板加载工具。

按语言(locale) 从 prompts/<locale> 目录读取模板文本。模板里的
`{prompt}` 占位符由调用方替换为用户输入。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompt_template(name: str, locale: str = "en") -> str:
    """根据模板名和语言加载模板文本（不含末尾换行）。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").rstrip("\n")


def render_prompt(name: str, locale: str = "en", **values: str) -> str:
    """加载模板并替换占位符。只替换给出的键，其余花括号保持原样。"""

    text = load_prompt_template(name, locale)
    for key, value in values.items():
        text = text.replace("{" + key + "}", value)
    return text
