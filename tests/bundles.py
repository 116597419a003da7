"""Small webpack bundles used across the test suite."""

import json
from typing import Dict, Optional, Union

# A production (minified) webpack 4 bundle with an array module table
MINIFIED_BUNDLE = (
    "!function(e){var t={};function n(r){if(t[r])return t[r].exports;"
    "var o=t[r]={i:r,l:!1,exports:{}};"
    "return e[r].call(o.exports,o,o.exports,n),o.l=!0,o.exports}"
    'n.p="/static/",n(n.s=0)}'
    '([function(e,t,n){var r=n(1);e.exports=r},function(e,t){e.exports="hi"}]);'
)


def object_bundle(
    modules: Dict[Union[int, str], str],
    entry: Union[int, str] = 0,
    public_path: Optional[str] = "",
) -> str:
    """A development-style bundle whose module table is an object literal.

    ``modules`` maps module ids to closure bodies. Closures receive
    ``(module, exports, __webpack_require__)``.
    """
    table = ",".join(
        f"{json.dumps(module_id) if isinstance(module_id, str) else module_id}:"
        f"function(module,exports,__webpack_require__){{{body}}}"
        for module_id, body in modules.items()
    )
    public = "" if public_path is None else f"__webpack_require__.p={json.dumps(public_path)};"
    return (
        "(function(modules){"
        "var installedModules={};"
        "function __webpack_require__(moduleId){"
        "if(installedModules[moduleId])return installedModules[moduleId].exports;"
        "var module=installedModules[moduleId]={i:moduleId,l:false,exports:{}};"
        "modules[moduleId].call(module.exports,module,module.exports,__webpack_require__);"
        "module.l=true;return module.exports}"
        f"{public}"
        f"return __webpack_require__(__webpack_require__.s={json.dumps(entry)})"
        "})({" + table + "});"
    )


def chunk_file(chunk_ids, modules: Dict[Union[int, str], str]) -> str:
    """A webpack 4 chunk file pushing ``modules`` onto the global jsonp array."""
    table = ",".join(
        f"{module_id}:function(module,exports,__webpack_require__){{{body}}}" for module_id, body in modules.items()
    )
    return f"(window.webpackJsonp=window.webpackJsonp||[]).push([{json.dumps(list(chunk_ids))},{{{table}}}]);"
