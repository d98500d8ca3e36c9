"""系统提示词与推荐问题。

按语言(locale) 从 prompts/<locale> 目录读取 system prompt 文本，
由 GatewayClient 放在发往网关的消息列表最前面。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

# 空会话时展示给用户的起始问题
SUGGESTED_PROMPTS = (
    "How do I protect against DDoS attacks?",
    "Explain common web vulnerabilities",
    "How to use the website scanner?",
    "What should I do after detecting a breach?",
)


def load_system_prompt(locale: str = "en") -> str:
    """加载 ThreatDoctor 助手的系统提示词文本。"""

    fname = PROMPTS_DIR / locale / "threat_doctor_system.md"
    return fname.read_text(encoding="utf-8").strip()
