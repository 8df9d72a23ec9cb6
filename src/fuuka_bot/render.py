"""Reply templates.

The environment is built once at startup and handed to the handlers through
the bridge context. Files in the configured templates directory override the
built-in templates of the same name.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2

from .errors import TemplateRenderFailure

PIXIV_ILLUST_TXT = """\
{{ title }} https://www.pixiv.net/artworks/{{ id }} | @{{ author.name }} https://www.pixiv.net/u/{{ author.id }}
{% for tag in tags %}#{{ tag.original }}{% if tag.translated %} ({{ tag.translated }}){% endif %}{% if not loop.last %} {% endif %}{% endfor %}
{%- for trigger in triggers %}
#{{ trigger }}诱捕器
{%- endfor %}"""

PIXIV_ILLUST_HTML = """\
<p><a href="https://www.pixiv.net/artworks/{{ id }}">{{ title }}</a> | <a href="https://www.pixiv.net/u/{{ author.id }}">@{{ author.name }}</a></p>
<p>{% for tag in tags %}<font color="#3771bb">#{{ tag.original }}</font>{% if tag.translated %} ({{ tag.translated }}){% endif %}{% if not loop.last %} {% endif %}{% endfor %}</p>
{%- for trigger in triggers %}
<p><b><font color="#d72b6d">#{{ trigger }}诱捕器</font></b></p>
{%- endfor %}"""

PIXIV_RANKING_TXT = """\
Pixiv Ranking: (Illust/Daily)
{%- for item in items %}
#{{ loop.index }}: {{ item.title }} https://www.pixiv.net/artworks/{{ item.id }} | {% for tag in item.tags %}#{{ tag }}{% if not loop.last %} {% endif %}{% endfor %}
{%- endfor %}"""

PIXIV_RANKING_HTML = """\
<b>Pixiv Ranking: (Illust/Daily)</b>
{%- for item in items %}<br/>#{{ loop.index }}: <a href="https://www.pixiv.net/artworks/{{ item.id }}">{{ item.title }}</a> | {% for tag in item.tags %}<font color="#3771bb">#{{ tag }}</font>{% if not loop.last %} {% endif %}{% endfor %}
{%- endfor %}"""

BILIBILI_VIDEO_TXT = """\
{{ title }} https://www.bilibili.com/video/{{ id }} | @{{ author.name }} https://space.bilibili.com/{{ author.id }}
▶️ {{ counts.view }} · 👍 {{ counts.like }} · 🪙 {{ counts.coin }} · 🌟 {{ counts.favorite }} · 🪧 {{ counts.danmaku }} · 💬 {{ counts.reply }} · ↗️ {{ counts.share }}
{% for tag in tags %}#{{ tag }}#{% if not loop.last %} {% endif %}{% endfor %}
{%- for line in description_lines %}
> {{ line }}
{%- endfor %}"""

BILIBILI_VIDEO_HTML = """\
<p><a href="https://www.bilibili.com/video/{{ id }}">{{ title }}</a> | <a href="https://space.bilibili.com/{{ author.id }}">@{{ author.name }}</a></p>
<p>▶️ {{ counts.view }} · 👍 {{ counts.like }} · 🪙 {{ counts.coin }} · 🌟 {{ counts.favorite }} · 🪧 {{ counts.danmaku }} · 💬 {{ counts.reply }} · ↗️ {{ counts.share }}</p>
{%- if description_lines %}
<details><summary>Description</summary><blockquote>{% for line in description_lines %}{{ line }}{% if not loop.last %}<br/>{% endif %}{% endfor %}</blockquote></details>
{%- endif %}
<p>{% for tag in tags %}<font color="#3771bb">#{{ tag }}#</font>{% if not loop.last %} {% endif %}{% endfor %}</p>"""

CRATE_TXT = """\
[Rust/Crate] {{ name }} v{{ version }}: {{ description or "(No Description)" }}
{%- if msrv %}
MSRV: {{ msrv }}
{%- endif %}
Docs: {{ documentation }}
{%- if repository %}
Repository: {{ repository }}
{%- endif %}"""

CRATE_HTML = """\
<p><b>[Rust/Crate]</b> {{ name }} v{{ version }}: {{ description or "(No Description)" }}</p>
<p>{% if msrv %}MSRV: {{ msrv }}<br/>{% endif %}Docs: <a href="{{ documentation }}">{{ documentation }}</a>
{%- if repository %}<br/>Repository: <a href="{{ repository }}">{{ repository }}</a>{% endif %}</p>"""

DEFAULT_TEMPLATES: dict[str, str] = {
    "pixiv/illust.txt": PIXIV_ILLUST_TXT,
    "pixiv/illust.html": PIXIV_ILLUST_HTML,
    "pixiv/ranking.txt": PIXIV_RANKING_TXT,
    "pixiv/ranking.html": PIXIV_RANKING_HTML,
    "bilibili/video.txt": BILIBILI_VIDEO_TXT,
    "bilibili/video.html": BILIBILI_VIDEO_HTML,
    "crates/crate.txt": CRATE_TXT,
    "crates/crate.html": CRATE_HTML,
}


def build_environment(directory: Path | None = None) -> jinja2.Environment:
    loaders: list[jinja2.BaseLoader] = []
    if directory is not None:
        loaders.append(jinja2.FileSystemLoader(directory))
    loaders.append(jinja2.DictLoader(DEFAULT_TEMPLATES))
    return jinja2.Environment(
        loader=jinja2.ChoiceLoader(loaders),
        autoescape=jinja2.select_autoescape(
            enabled_extensions=("html",), default_for_string=False
        ),
        undefined=jinja2.StrictUndefined,
    )


def render(env: jinja2.Environment, name: str, context: Mapping[str, Any]) -> str:
    try:
        return env.get_template(name).render(context)
    except jinja2.TemplateError as exc:
        raise TemplateRenderFailure(name, str(exc)) from exc


def render_pair(
    env: jinja2.Environment, base: str, context: Mapping[str, Any]
) -> tuple[str, str]:
    """Render ``<base>.txt`` and ``<base>.html`` with the same context."""
    return render(env, f"{base}.txt", context), render(env, f"{base}.html", context)
