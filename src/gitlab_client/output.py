"""Output formatting for the glapi command, in text or JSON mode."""

import json
import sys

_json_mode = False

def set_json_mode(enabled: bool):
    global _json_mode
    _json_mode = enabled

def emit(prefix, message, data=None):
    if _json_mode:
        output_data = {'status': prefix.lower(), 'message': message}
        if data:
            output_data.update(data)
        print(json.dumps(output_data, default=str))
    else:
        print(f'{prefix} {message}')

def emit_json(data):
    print(json.dumps(data, indent=2, default=str))

def emit_error(message):
    if _json_mode:
        print(json.dumps({'status': 'error', 'message': message}), file=sys.stderr)
    else:
        print(f'ERR {message}', file=sys.stderr)

def emit_pagination(resp):
    """One line summary of offset pagination headers, text mode only."""
    if _json_mode or not resp.total_pages:
        return
    print(f'-- page {resp.current_page}/{resp.total_pages} ({resp.total_items} items)',
          file=sys.stderr)
