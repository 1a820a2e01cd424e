from html import escape

from wrapped.api.schemas.stats import StatsResponse


CARD_WIDTH = 900
CARD_HEIGHT = 1300
CARD_PADDING = 60
DEFAULT_LANGUAGE_COLOR = "#3fb950"
FONT_FAMILY = "Inter,-apple-system,Segoe UI,Helvetica,Arial,sans-serif"


def _text(
    x: int, y: int, css_class: str, content: object, anchor: str = "start"
) -> str:
    return (
        f'<text class="{css_class}" x="{x}" y="{y}" text-anchor="{anchor}">'
        f"{escape(str(content))}</text>"
    )


def _language_rows(stats: StatsResponse, top: int) -> list[str]:
    bar_width = CARD_WIDTH - 2 * CARD_PADDING
    rows: list[str] = []
    for index, language in enumerate(stats.top_languages[:5]):
        y = top + index * 64
        color = escape(language.color or DEFAULT_LANGUAGE_COLOR)
        share = max(0.0, min(language.percentage, 100.0))
        fill_width = round(bar_width * share / 100, 1)
        rows.extend(
            [
                _text(CARD_PADDING, y, "lang", language.name),
                _text(
                    CARD_WIDTH - CARD_PADDING,
                    y,
                    "muted",
                    f"{language.percentage:.1f}%",
                    anchor="end",
                ),
                f'<rect x="{CARD_PADDING}" y="{y + 14}" width="{bar_width}" '
                f'height="8" rx="4" fill="#30363d"/>',
                f'<rect x="{CARD_PADDING}" y="{y + 14}" width="{fill_width}" '
                f'height="8" rx="4" fill="{color}"/>',
            ]
        )
    return rows


def render_wrapped_card(stats: StatsResponse) -> str:
    """Render the shareable wrapped card as an SVG document."""

    title = f"Dev Wrapped {stats.year}"
    elements = [
        f'<rect x="0" y="0" width="{CARD_WIDTH}" height="{CARD_HEIGHT}" '
        'fill="#161b22"/>',
        _text(CARD_PADDING, 114, "title", title),
        _text(CARD_PADDING, 164, "subtitle", f"@{stats.username}"),
        _text(CARD_PADDING, 340, "hero", stats.total_commits),
        _text(CARD_PADDING, 390, "muted", "Total Commits in the Year"),
        _text(CARD_PADDING, 480, "category", stats.category.value),
        _text(
            CARD_PADDING,
            514,
            "small",
            f"{stats.audit_ratio}% follow best practices (Conventional Commits)",
        ),
        _text(CARD_PADDING, 600, "heading", "Max Streak"),
        _text(CARD_PADDING, 690, "streak", stats.max_streak),
        _text(CARD_PADDING, 780, "heading", "Top Languages"),
        *_language_rows(stats, top=830),
        _text(
            CARD_PADDING,
            1190,
            "muted",
            f"{stats.created_this_year} repositories created  •  "
            f"{stats.followers} followers",
        ),
        _text(CARD_WIDTH // 2, 1250, "footer", "Generated by GitHub Wrapped", "middle"),
    ]
    body = "\n  ".join(elements)
    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{CARD_WIDTH}" height="{CARD_HEIGHT}" viewBox="0 0 {CARD_WIDTH} {CARD_HEIGHT}" role="img" aria-label="{escape(title)}">
  <defs>
    <style><![CDATA[
      text {{ font-family: {FONT_FAMILY}; }}
      .title {{ fill: #c9d1d9; font-size: 54px; font-weight: 700; }}
      .subtitle {{ fill: #8b949e; font-size: 32px; }}
      .hero {{ fill: #58a6ff; font-size: 140px; font-weight: 700; letter-spacing: -2px; }}
      .muted {{ fill: #8b949e; font-size: 24px; }}
      .category {{ fill: #c9d1d9; font-size: 30px; font-weight: 600; }}
      .small {{ fill: #8b949e; font-size: 18px; }}
      .heading {{ fill: #58a6ff; font-size: 32px; font-weight: 700; }}
      .streak {{ fill: #58a6ff; font-size: 76px; font-weight: 700; }}
      .lang {{ fill: #c9d1d9; font-size: 20px; }}
      .footer {{ fill: #484f58; font-size: 16px; }}
    ]]></style>
  </defs>
  {body}
</svg>"""
