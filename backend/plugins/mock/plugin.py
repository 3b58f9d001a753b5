# Mock plugin: exercises every way a probe can succeed or fail.
#
# The mode is read from <plugin data dir>/config.json, created with
# {"mode": "ok"} on first run. Modes: ok, throw, reject, unresolved_promise,
# non_object, missing_lines, unknown_line_type, fs_throw, http_throw,
# sqlite_throw. Anything else renders a warning badge.
#
# http.request takes arguments (method, url, headers, body_text, timeout_ms)
# or one dict {"method", "url", "headers", "bodyText", "timeoutMs"}.

DEFAULT_CONFIG = {"mode": "ok"}


def line_text(label, value, color=None):
    line = {"type": "text", "label": label, "value": value}
    if color:
        line["color"] = color
    return line


def line_progress(label, value, max_value, unit=None, color=None):
    line = {"type": "progress", "label": label, "value": value, "max": max_value}
    if unit:
        line["unit"] = unit
    if color:
        line["color"] = color
    return line


def line_badge(label, text, color=None):
    line = {"type": "badge", "label": label, "text": text}
    if color:
        line["color"] = color
    return line


def safe_string(value):
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except Exception:
        return str(value)


def read_config(ctx, config_path):
    fs = ctx.host.fs
    if not fs.exists(config_path):
        try:
            fs.write_text(config_path, json.dumps(DEFAULT_CONFIG, indent=2))
        except Exception:
            ctx.host.log.warn("could not write default config to " + config_path)
        return dict(DEFAULT_CONFIG)

    try:
        parsed = json.loads(fs.read_text(config_path))
    except Exception:
        return dict(DEFAULT_CONFIG)
    if not isinstance(parsed, dict):
        return dict(DEFAULT_CONFIG)
    mode = parsed.get("mode")
    if not isinstance(mode, str):
        mode = DEFAULT_CONFIG["mode"]
    return {"mode": mode}


def probe(ctx):
    config_path = ctx.app.plugin_data_dir + "/config.json"
    config = read_config(ctx, config_path)
    mode = str(config.get("mode") or "ok")

    # Non-raising modes always say where to change the mode
    hint_lines = [
        line_badge("Mode", mode, "#000000"),
        line_text("Config", config_path),
    ]

    if mode == "ok":
        return {
            "lines": hint_lines + [
                line_progress("Percent", 42, 100, "percent", "#22c55e"),
                line_progress("Dollars", 12.34, 100, "dollars", "#3b82f6"),
                line_text("Now", ctx.now_iso),
            ]
        }

    if mode == "throw":
        raise RuntimeError("mock plugin: thrown error")

    if mode == "reject":
        rejected = Future()
        rejected.set_exception(RuntimeError("mock plugin: rejected promise"))
        return rejected

    if mode == "unresolved_promise":
        return Future()

    if mode == "non_object":
        return "not an object"

    if mode == "missing_lines":
        return {}

    if mode == "unknown_line_type":
        return {"lines": hint_lines + [{"type": "nope", "label": "Bad", "value": "data"}]}

    if mode == "fs_throw":
        ctx.host.fs.read_text("/definitely/not/a/real/path-" + str(int(ctx.now.timestamp() * 1000)))
        return {"lines": hint_lines}

    if mode == "http_throw":
        ctx.host.http.request({"method": "NOPE_METHOD", "url": "https://example.com/", "timeoutMs": 1000})
        return {"lines": hint_lines}

    if mode == "sqlite_throw":
        ctx.host.storage.query(ctx.app.app_data_dir + "/does-not-matter.db", ".schema")
        return {"lines": hint_lines}

    return {
        "lines": hint_lines + [
            line_badge("Warning", "unknown mode: " + safe_string(mode), "#f59e0b"),
        ]
    }
