"""Standalone preview page for one materialized component."""

import html
import re

_IMPORT_RE = re.compile(r"^\s*import\s[^\n]*$", re.MULTILINE)
_EXPORT_DEFAULT_DECL_RE = re.compile(r"^(\s*)export\s+default\s+(?=(?:async\s+)?(?:function|class)\b)",
                                     re.MULTILINE)
_EXPORT_DEFAULT_IDENT_RE = re.compile(r"^\s*export\s+default\s+[A-Za-z_$][\w$]*\s*;?\s*$", re.MULTILINE)
_EXPORT_RE = re.compile(r"^(\s*)export\s+(?=(?:const|let|var|function|class|async)\b)", re.MULTILINE)

_HOOKS = "useState, useEffect, useRef, useCallback, useMemo, useReducer, useContext"

_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Preview: {title}</title>
  <script src="https://unpkg.com/react@17/umd/react.development.js"></script>
  <script src="https://unpkg.com/react-dom@17/umd/react-dom.development.js"></script>
  <script src="https://unpkg.com/babel-standalone@6/babel.min.js"></script>
  {stylesheet}
  <style>#root {{ padding: 20px; }}</style>
</head>
<body>
  <div id="root"></div>
  <script type="text/babel">
{script}
  </script>
</body>
</html>
"""


def to_browser_script(source, name):
    """Turn an ES module component into a script the in-browser Babel can run.

    Imports are dropped (React comes from the UMD bundle), exports are
    unwrapped and the component is mounted into #root.
    """
    body = _IMPORT_RE.sub("", source)
    body = _EXPORT_DEFAULT_DECL_RE.sub(r"\1", body)
    body = _EXPORT_DEFAULT_IDENT_RE.sub("", body)
    body = _EXPORT_RE.sub(r"\1", body)
    body = body.replace("</script", "<\\/script")
    return (
        f"const {{ {_HOOKS} }} = React;\n"
        f"{body.strip()}\n"
        f"ReactDOM.render(React.createElement({name}), document.getElementById('root'));"
    )


def render_preview_page(name, source, stylesheet_url=None):
    stylesheet = ""
    if stylesheet_url:
        stylesheet = f'<link href="{html.escape(stylesheet_url)}" rel="stylesheet">'
    return _PAGE.format(
        title=html.escape(name),
        stylesheet=stylesheet,
        script=to_browser_script(source, name),
    )
