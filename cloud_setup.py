import json
import re

REQUIRED_KEYS = ("apiKey", "authDomain", "projectId")

INVALID_CONFIG_HINT = "Please copy the 'firebaseConfig' object exactly from the Firebase Console."

SETUP_CHECKLIST = [
    "Enable Authentication (Google Sign-in) in Firebase Console.",
    "Create Firestore Database (Start in Test Mode).",
]

PASTE_INSTRUCTIONS = (
    "Copy the entire 'const firebaseConfig = ...' block from "
    "Project Settings > General > Your Apps."
)


# --- Errors ---

class IngestError(Exception):
    """Base class for every failure of the paste-and-connect flow. Always retryable."""
    kind = "IngestError"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class MalformedInputError(IngestError):
    kind = "MalformedInput"


class MissingRequiredFieldError(IngestError):
    kind = "MissingRequiredField"

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required Firebase keys ({', '.join(self.missing)}).")


class ConnectionFailedError(IngestError):
    kind = "ConnectionFailed"


# --- Normalization ---

# Strings and comments are skipped so an '=' inside them is never taken for the assignment.
_ASSIGNMENT_SCAN_RE = re.compile(r"""
    "(?:[^"\\\n]|\\.)*"
  | '(?:[^'\\\n]|\\.)*'
  | //[^\n]*
  | /\*.*?\*/
  | (?P<assign>=)
""", re.VERBOSE | re.DOTALL)


def _find_assignment(text):
    for match in _ASSIGNMENT_SCAN_RE.finditer(text):
        if match.lastgroup == "assign":
            return match
    return None


def normalize_config_text(raw):
    """
    Strips what users copy along with the object from the console:
    surrounding whitespace, a leading 'const firebaseConfig =' and a trailing ';'.

    Everything up to the first '=' outside a string or comment is dropped, so
    an import line above the declaration or a comment after the '=' is fine.
    """
    text = (raw or "").strip()

    assignment = _find_assignment(text)
    if assignment:
        text = text[assignment.end():].strip()

    if text.endswith(";"):
        text = text[:-1].strip()
    return text


# --- Object literal parser ---

_TOKEN_RE = re.compile(r"""
    (?P<space>\s+)
  | (?P<comment>//[^\n]*|/\*.*?\*/)
  | (?P<punct>[{}:,])
  | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
  | (?P<number>[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)
  | (?P<ident>[A-Za-z_$][A-Za-z0-9_$]*)
""", re.VERBOSE | re.DOTALL)

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0",
}

_LITERALS = {"true": True, "false": False, "null": None, "undefined": None}

# Pasted text beyond either limit is rejected as malformed.
MAX_NESTING_DEPTH = 32
MAX_NUMBER_LENGTH = 100


def _unescape(body):
    def replace(match):
        escape = match.group(1)
        if escape[0] in ("u", "x") and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, escape)
    return _ESCAPE_RE.sub(replace, body)


def tokenize(text):
    """Splits object-literal text into (kind, value, position) tokens, dropping whitespace and comments."""
    tokens = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if not match:
            raise MalformedInputError(f"Unexpected character {text[position]!r} at position {position}.")
        kind = match.lastgroup
        value = match.group()
        if kind == "string":
            tokens.append(("string", _unescape(value[1:-1]), position))
        elif kind == "number":
            if len(value) > MAX_NUMBER_LENGTH:
                raise MalformedInputError(f"Number at position {position} is too long ({len(value)} characters).")
            number = int(value) if re.fullmatch(r"[-+]?\d+", value) else float(value)
            tokens.append(("number", number, position))
        elif kind in ("punct", "ident"):
            tokens.append((kind, value, position))
        position = match.end()
    return tokens


class _ObjectLiteralParser:
    """Recursive-descent parser for the object literal subset. Builds dicts, never evaluates."""

    def __init__(self, tokens):
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    def peek(self):
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self):
        token = self.peek()
        if token is None:
            raise MalformedInputError("Unexpected end of input; the object is not closed.")
        self.index += 1
        return token

    def expect(self, punct):
        kind, value, position = self.advance()
        if kind != "punct" or value != punct:
            raise MalformedInputError(f"Expected '{punct}' at position {position}, found {value!r}.")

    def parse(self):
        if self.peek() is None:
            raise MalformedInputError("Configuration is empty.")
        result = self.parse_object()
        trailing = self.peek()
        if trailing is not None:
            raise MalformedInputError(f"Unexpected {trailing[1]!r} after the closing '}}' at position {trailing[2]}.")
        return result

    def parse_object(self):
        self.expect("{")
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise MalformedInputError(f"Objects are nested more than {MAX_NESTING_DEPTH} levels deep.")
        result = self.parse_members()
        self.depth -= 1
        return result

    def parse_members(self):
        result = {}
        while True:
            token = self.peek()
            if token is not None and token[:2] == ("punct", "}"):
                self.advance()
                return result

            key = self.parse_key()
            self.expect(":")
            result[key] = self.parse_value()

            kind, value, position = self.advance()
            if kind == "punct" and value == "}":
                return result
            if kind != "punct" or value != ",":
                raise MalformedInputError(f"Expected ',' or '}}' at position {position}, found {value!r}.")

    def parse_key(self):
        kind, value, position = self.advance()
        if kind in ("ident", "string"):
            return value
        raise MalformedInputError(f"Expected a key at position {position}, found {value!r}.")

    def parse_value(self):
        token = self.peek()
        if token is not None and token[:2] == ("punct", "{"):
            return self.parse_object()

        kind, value, position = self.advance()
        if kind in ("string", "number"):
            return value
        if kind == "ident" and value in _LITERALS:
            return _LITERALS[value]
        raise MalformedInputError(f"Unsupported value {value!r} at position {position}; only strings, numbers and booleans are allowed.")


def parse_object_literal(text):
    """Parses a JavaScript-style object literal (unquoted keys allowed) into a dict."""
    return _ObjectLiteralParser(tokenize(text)).parse()


# --- Validation ---

def validate_config(config):
    if not isinstance(config, dict):
        raise MalformedInputError("Configuration must be an object of key/value pairs.")

    nested = [key for key, value in config.items() if isinstance(value, dict)]
    if nested:
        raise MalformedInputError(f"Configuration must be flat; nested objects found under: {', '.join(nested)}.")

    missing = []
    for key in REQUIRED_KEYS:
        value = config.get(key)
        if not value or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    if missing:
        raise MissingRequiredFieldError(missing)
    return config


def ingest(raw):
    """
    Turns pasted Firebase console text into a validated connection config.

    Raises MalformedInputError when the text is not an object literal and
    MissingRequiredFieldError when apiKey, authDomain or projectId is absent or empty.
    """
    text = normalize_config_text(raw)
    config = parse_object_literal(text)
    return validate_config(config)


def serialize_config(config):
    """Quoted-key rendering of a config; ingest() accepts it back unchanged."""
    return json.dumps(config, indent=2, ensure_ascii=False)


# --- Connection ---

def connect(raw, service):
    """Ingests the pasted text and initializes the connection service with it."""
    config = ingest(raw)
    try:
        outcome = service.initialize(config)
    except Exception as e:
        raise ConnectionFailedError(f"Could not connect to project '{config['projectId']}': {e}") from e

    if isinstance(outcome, BaseException):
        raise ConnectionFailedError(f"Could not connect to project '{config['projectId']}': {outcome}") from outcome
    return config


class CloudService:
    """In-process connection service boundary. Holds the active config; no network calls."""

    def __init__(self):
        self.config = None

    def initialize(self, config):
        if not isinstance(config, dict):
            raise TypeError("Connection config must be a dict.")
        self.config = dict(config)

    def is_connected(self):
        return self.config is not None

    @property
    def project_id(self):
        if self.config is None:
            return None
        return self.config.get("projectId")

    def disconnect(self):
        self.config = None


cloud_service = CloudService()
