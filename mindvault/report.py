"""
Markdown rendering of a weekly synthesis.

Heading text and section order are stable across releases so that
reports from different weeks can be diffed.
"""

from datetime import datetime

from .synthesis import MIN_PATTERN_DOCUMENTS, SynthesisResult

MAX_PATTERNS = 10
MAX_RELATED = 5


def render_report(result: SynthesisResult, generated_at: datetime) -> str:
    """Render a SynthesisResult as a markdown document."""
    lines: list[str] = []

    lines.append(f"# Weekly Synthesis - {result.week_start} to {result.week_end}")
    lines.append("")
    lines.append(f"**Generated:** {generated_at.isoformat()}")
    lines.append(f"**Total Learnings:** {result.total}")
    lines.append("")
    lines.append("---")
    lines.append("")

    lines.append("## 🔍 Patterns Detected")
    lines.append("")
    if result.groups:
        for group in result.groups[:MAX_PATTERNS]:
            lines.append(f"### {group.theme} ({group.occurrences} occurrences)")
            lines.append("")
            lines.append(f"**Insight:** {group.insight}")
            lines.append("")
            lines.append("**Related Learnings:**")
            for doc in group.documents[:MAX_RELATED]:
                lines.append(f"- [{doc.date}] {doc.title}")
            lines.append("")
    else:
        lines.append(
            "No significant patterns detected this week "
            f"(requires {MIN_PATTERN_DOCUMENTS}+ similar learnings)."
        )
        lines.append("")

    if result.top_insights:
        lines.append("## 💡 Key Insights")
        lines.append("")
        for insight in result.top_insights:
            lines.append(f"- {insight}")
        lines.append("")

    if result.low_ratings:
        lines.append("## ⚠️ Areas for Improvement")
        lines.append("")
        lines.append("Learnings with low ratings (≤3/10) requiring attention:")
        lines.append("")
        for doc in result.low_ratings:
            lines.append(f"- **[{doc.date}]** {doc.title} ({doc.rating}/10)")
        lines.append("")

    lines.append("## 📋 Action Items")
    lines.append("")
    if result.groups:
        lines.append("- Review top patterns and identify systemic improvements")
    if result.low_ratings:
        lines.append("- Address root causes of low-rated learnings")
    lines.append("- Apply lessons to upcoming work")
    lines.append("")

    lines.append("---")
    lines.append("")
    lines.append("*Auto-generated by mindvault weekly synthesis*")

    return "\n".join(lines)
