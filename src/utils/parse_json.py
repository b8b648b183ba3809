import simplejson as jsonplus
from commentjson import loads as cjson_loads


def extract_json_text(jsonstr: str) -> str:
    """Cut the outermost JSON object or array out of free text (LLM chatter, code fences)."""
    starts = [i for i in (jsonstr.find("{"), jsonstr.find("[")) if i != -1]
    if not starts:
        return jsonstr
    json_start = min(starts)
    closer = "}" if jsonstr[json_start] == "{" else "]"

    json_end = jsonstr.rfind(closer)
    if json_end == -1 or json_end < json_start:
        return jsonstr
    return jsonstr[json_start : json_end + 1]


def parse_json(json_string):
    """
    Attempts to parse a JSON string using simplejson and commentjson.

    Args:
        json_string (str): The JSON string to parse.

    Returns:
        The parsed JSON data if successful.
        None: If the input is not a string or parsing fails with both methods.
    """
    if not isinstance(json_string, str):
        return None
    json_string = extract_json_text(json_string)
    try:
        return jsonplus.loads(json_string)
    except Exception:
        try:
            return cjson_loads(json_string)
        except Exception:
            return None
