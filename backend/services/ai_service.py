"""
AI Service — coaching text generated from the trader's own journal.
Supports: Groq, Google Gemini, Anthropic Claude, OpenAI GPT-4.
"""
import json
import logging

from backend.models.strategy import BacktestConfig, BacktestResult
from backend.models.trade import Trade
from config.settings import settings

logger = logging.getLogger(__name__)

MIN_TRADES_FOR_COACHING = 3
MAX_TRADES_IN_PROMPT = 50

MORE_DATA_REQUIRED = (
    "### 📊 More Data Required\n\n"
    "Please log at least 3-5 completed trades to unlock AI Coaching. "
    "I need to observe your execution patterns and emotional responses over multiple data points."
)

ANALYSIS_INTERRUPTED = (
    "### ⚠️ Analysis Interrupted\n\n"
    "I was unable to complete the analysis. This usually happens due to a network timeout "
    "or API quota limit. Please try again in 5 minutes."
)

EMPTY_RESPONSE = "Coach is currently analyzing the tape. Please check back shortly."


def _call_llm(system_prompt: str, user_prompt: str, temperature: float = 0.8) -> str:
    provider = settings.AI_PROVIDER

    if provider == "groq":
        from groq import Groq
        client = Groq(api_key=settings.GROQ_API_KEY)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        response = client.chat.completions.create(
            model="llama-3.3-70b-versatile",
            messages=messages,
            max_tokens=4096,
            temperature=temperature,
        )
        return response.choices[0].message.content

    elif provider == "gemini":
        import google.generativeai as genai
        genai.configure(api_key=settings.GOOGLE_API_KEY)
        model = genai.GenerativeModel(
            "gemini-2.0-flash",
            system_instruction=system_prompt,
        )
        response = model.generate_content(
            user_prompt,
            generation_config={"temperature": temperature, "top_p": 0.95},
        )
        return response.text

    elif provider == "anthropic":
        from anthropic import Anthropic
        client = Anthropic(api_key=settings.ANTHROPIC_API_KEY)
        response = client.messages.create(
            model="claude-sonnet-4-20250514",
            max_tokens=4096,
            temperature=min(temperature, 1.0),
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text

    else:  # openai
        from openai import OpenAI
        client = OpenAI(api_key=settings.OPENAI_API_KEY)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        response = client.chat.completions.create(
            model="gpt-4o", messages=messages, max_tokens=4096, temperature=temperature
        )
        return response.choices[0].message.content


# ──────────────────────────────────────────────
# 1. JOURNAL COACH — patterns across recent trades
# ──────────────────────────────────────────────

JOURNAL_COACH_SYSTEM = """You are 'Adhyayan AI', an elite performance coach for professional derivatives traders.

Tasks:
1. Identify the **Golden Setup**: Which strategy or setup is consistently producing high-quality results?
2. Identify the **Psychological Leak**: Connect emotions (mood/emotions) to the biggest P/L losses.
3. Identify the **Strategic Error**: Point out recurring execution mistakes (e.g., chasing price, moving SL).
4. Provide the **High-Performance Directive**: Give the trader ONE specific rule for the next 7 days.

Style: Brutally honest but encouraging. Use professional trading terminology. Format in clean Markdown with bold highlights."""


def trade_context(trade: Trade) -> dict:
    """The slice of a trade the coach gets to see."""
    return {
        "symbol": trade.symbol,
        "pnl": trade.pnl,
        "type": trade.trade_type.value,
        "setup": ", ".join(trade.setups) or "N/A",
        "mistakes": ", ".join(trade.mistakes) or "None",
        "mood": trade.mood.value if trade.mood else "Neutral",
        "rating": trade.rating or 0,
        "notes": (trade.notes or "")[:150],
        "rr": trade.rr_ratio,
    }


def analyze_journal_patterns(trades: list[Trade]) -> str:
    """Coaching markdown for the most recent trades (newest first, as listed)."""
    if len(trades) < MIN_TRADES_FOR_COACHING:
        return MORE_DATA_REQUIRED

    context = [trade_context(t) for t in trades[:MAX_TRADES_IN_PROMPT]]
    prompt = f"""Review the following journal history:

{json.dumps(context, indent=2)}
"""
    try:
        text = _call_llm(JOURNAL_COACH_SYSTEM, prompt)
    except Exception as e:
        logger.warning("Journal coaching call failed: %s", e)
        return ANALYSIS_INTERRUPTED
    return text or EMPTY_RESPONSE


# ──────────────────────────────────────────────
# 2. BACKTEST EXPLAINER — Summarize results
# ──────────────────────────────────────────────

BACKTEST_EXPLAINER_SYSTEM = """You are a trading educator explaining a journal backtest to a trader. The backtest replays the trader's OWN logged trades that match a filter, against a simulated starting balance. Make the data meaningful and actionable.

Formatting rules (STRICT — follow exactly):
- Use markdown headers (##) for each section
- Use bullet points (-) for every insight, NOT paragraphs
- Each bullet should be 1-2 sentences max
- **Bold** all key numbers, percentages, and currency amounts

Structure your response EXACTLY like this:

## Performance Summary
## What The Filter Reveals
## How to Improve
## Risk Verdict

Use the actual numbers. Be specific, not generic."""


def explain_backtest(result: BacktestResult, config: BacktestConfig) -> str:
    """Generate a human-readable explanation of backtest results."""
    if result.count == 0:
        return f"No closed trades matched **{result.strategy_name}** in the selected range."

    prompt = f"""
Filter: {config.model_dump_json(indent=2)}

Backtest Statistics:
{json.dumps(result.model_dump(exclude={"equity_curve"}), indent=2)}

Equity points: {len(result.equity_curve or [])}
"""
    try:
        return _call_llm(BACKTEST_EXPLAINER_SYSTEM, prompt, temperature=0.4)
    except Exception as e:
        logger.warning("Backtest explanation call failed: %s", e)
        return ANALYSIS_INTERRUPTED
