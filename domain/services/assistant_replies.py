import re
from datetime import datetime
from typing import Optional, Tuple

DEFAULT_SPECIALTY = "general"


class ReplyCategory:
    GREETING = "greeting"
    CAPABILITIES = "capabilities"
    THANKS = "thanks"
    FAREWELL = "farewell"
    WEATHER = "weather"
    TIME = "time"
    DATE = "date"
    CLARIFY = "clarify"
    KEYWORDS = "keywords"
    GENERIC = "generic"


# Порядок важен: срабатывает первое совпадение
_PATTERNS = (
    (ReplyCategory.GREETING, re.compile(r"^(hi|hello|hey|greetings)")),
    (ReplyCategory.CAPABILITIES, re.compile(r"what can you do|help me with")),
    (ReplyCategory.THANKS, re.compile(r"thank|thanks|thx|appreciate it")),
    (ReplyCategory.FAREWELL, re.compile(r"bye|goodbye|see you|talk to you later")),
    (ReplyCategory.WEATHER, re.compile(r"weather")),
    (ReplyCategory.TIME, re.compile(r"time")),
    (ReplyCategory.DATE, re.compile(r"date")),
)

MAX_KEYWORDS = 3
MIN_KEYWORD_LENGTH = 5
SHORT_QUERY_WORDS = 3

ERROR_REPLY = "Sorry, I'm having trouble processing your request right now. Please try again later."


def extract_keywords(text: str):
    """Слова длиннее четырех символов, не больше трех"""
    return [word for word in text.split() if len(word) >= MIN_KEYWORD_LENGTH][:MAX_KEYWORDS]


def classify(text: str) -> str:
    """Определяет категорию ответа по тексту сообщения"""
    normalized = text.lower().strip()
    for category, pattern in _PATTERNS:
        if pattern.search(normalized):
            return category

    if len(text.split()) <= SHORT_QUERY_WORDS:
        return ReplyCategory.CLARIFY
    if extract_keywords(text):
        return ReplyCategory.KEYWORDS
    return ReplyCategory.GENERIC


def synthesize_reply(text: str, specialty: Optional[str] = None, now: Optional[datetime] = None) -> Tuple[str, str]:
    """Формирует ответ ассистента. Возвращает (категория, текст)"""
    specialty = specialty or DEFAULT_SPECIALTY
    now = now or datetime.now()
    category = classify(text)

    if category == ReplyCategory.GREETING:
        reply = f"Hello there! I'm your {specialty} assistant. How can I help you today?"
    elif category == ReplyCategory.CAPABILITIES:
        if specialty == DEFAULT_SPECIALTY:
            reply = ("I can help you with a wide range of topics including answering questions, "
                     "providing information, or just chatting. What would you like to know?")
        else:
            reply = (f"As your {specialty} assistant, I can help you with anything related to {specialty}. "
                     "What specific assistance do you need?")
    elif category == ReplyCategory.THANKS:
        reply = "You're welcome! Is there anything else I can assist you with?"
    elif category == ReplyCategory.FAREWELL:
        reply = "Goodbye! Feel free to message me anytime you need assistance."
    elif category == ReplyCategory.WEATHER:
        reply = ("I don't have real-time weather data, but I'd be happy to discuss the weather forecast "
                 "if you had access to that information.")
    elif category == ReplyCategory.TIME:
        reply = f"The current time is {now.strftime('%I:%M %p').lstrip('0')}."
    elif category == ReplyCategory.DATE:
        reply = f"Today is {now.strftime('%B %d, %Y')}."
    elif category == ReplyCategory.CLARIFY:
        reply = (f"I understand you're asking about \"{text}\". "
                 "Can you provide more details so I can help you better?")
    elif category == ReplyCategory.KEYWORDS:
        keywords = ", ".join(extract_keywords(text))
        reply = (f"I see you're interested in {keywords}. As your {specialty} assistant, I'm here to help "
                 "with that. Could you tell me more specifically what you're looking for?")
    else:
        reply = (f"Thank you for your message. I'm processing your request about \"{text[:30]}...\". "
                 f"How else can I assist you with {specialty} topics?")

    return category, reply
