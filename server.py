import sys
import traceback
from flask import Flask, request, jsonify

from engine_config import EngineConfig
from grammar_model import GrammarError, GrammarReader
from grammar_transform import reduce_grammar
from ll_analysis import ActionTable
from ll_parser import NoApplicableProductionError, ParseError, PredictiveParser, Token
from pascalmp import LexicalUnit, TERMINAL_MAP, pascalmp_grammar
from visualization import VisualizationGenerator

app = Flask(__name__)

visualizer = VisualizationGenerator()


# --- HTML Escape Helper ---
def escapeHtml(unsafe):
    if unsafe is None: return ''
    unsafe = str(unsafe)
    return unsafe.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;').replace('"', '&quot;').replace("'", '&#039;')


# --- Request Helpers ---
def read_options(data):
    options = data.get('options') or {}
    if not isinstance(options, dict):
        raise ValueError("Options must be a JSON object")
    return EngineConfig.from_mapping(options)


def read_tokens(raw_tokens, unit_of):
    """Convert JSON token objects into Token values, mapping their type with unit_of."""
    if not isinstance(raw_tokens, list) or not raw_tokens:
        raise ValueError("No tokens provided")
    tokens = []
    for raw in raw_tokens:
        if not isinstance(raw, dict) or 'type' not in raw:
            raise ValueError(f"Malformed token: {raw!r}")
        tokens.append(Token(
            type=unit_of(raw['type']),
            value=raw.get('value'),
            line=raw.get('line', 1),
            column=raw.get('column', 1),
        ))
    return tokens


def pascalmp_unit(name):
    try:
        return LexicalUnit[name]
    except KeyError:
        raise ValueError(f"Unknown lexical unit: {name}") from None


# --- Flask Endpoints ---

@app.route('/analyze-grammar', methods=['POST'])
def analyze_grammar():
    """
    Reduce a CFG and report its FIRST/FOLLOW sets and LL(1) action table.

    The grammar is cleaned of useless symbols, left recursion and common
    prefixes before the analysis, as configured by the request options.
    """
    data = request.json or {}
    cfg_input = data.get('cfg')
    start_symbol = data.get('start_symbol')

    if not cfg_input:
        return jsonify({"error": "No CFG provided"}), 400

    try:
        config = read_options(data)
        print("--- Analyzing Grammar ---", file=sys.stderr)
        grammar = GrammarReader().read(cfg_input, start_symbol)
        reduced = reduce_grammar(grammar, config)
        table = ActionTable(reduced)
        conflicts = table.conflicts()
        report = visualizer.generate_grammar_report(table)

        print(f"Reduced grammar has {len(reduced.numbered_rules())} rules", file=sys.stderr)
        if conflicts:
            print(f"Conflicts detected: {len(conflicts)}", file=sys.stderr)

        return jsonify({
            "success": True,
            "start_symbol": str(reduced.start_symbol),
            "reduced_grammar": str(reduced),
            "analysis": table.dump(config.epsilon_label),
            "is_ll1": table.is_ll(1),
            "action_table_html": report['table_html'],
            "conflicts_html": report['conflicts_html'],
            "conflicts": [str(conflict) for conflict in conflicts],
        })

    except (GrammarError, ValueError) as e:
        print(f"--- Grammar Analysis FAILED ---", file=sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        return jsonify({"success": False, "error": str(e)}), 400

    except Exception as e:
        print(f"--- UNEXPECTED Python Error: {e} ---", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        error_message = f"Unexpected server error: {escapeHtml(str(e))}"
        return jsonify({"error": error_message}), 500


@app.route('/parse-tokens', methods=['POST'])
def parse_tokens():
    """
    Parse a token stream with the predictive parser.

    Without a CFG the PascalMP grammar is used and token types are lexical
    unit names such as BEG or VARNAME. With a CFG, token types are compared
    with the terminal names, or with the values of terminal_map when given.
    The last token is the end-of-stream marker.
    """
    data = request.json or {}
    cfg_input = data.get('cfg')

    try:
        config = read_options(data)
        if cfg_input:
            print("--- Using Custom Grammar ---", file=sys.stderr)
            grammar = GrammarReader().read(cfg_input, data.get('start_symbol'))
            terminal_map = data.get('terminal_map')
            if terminal_map is not None and not isinstance(terminal_map, dict):
                raise ValueError("terminal_map must be a JSON object")
            tokens = read_tokens(data.get('tokens'), str)
        else:
            print("--- Using PascalMP Grammar ---", file=sys.stderr)
            grammar = pascalmp_grammar()
            terminal_map = TERMINAL_MAP
            tokens = read_tokens(data.get('tokens'), pascalmp_unit)
    except (GrammarError, ValueError) as e:
        print(f"--- Request Rejected: {e} ---", file=sys.stderr)
        return jsonify({"success": False, "error": str(e), "error_type": "request_error"}), 400

    try:
        parser = PredictiveParser(grammar, tokens, terminal_map, config)
        print(f"--- Parsing {len(tokens)} Tokens ---", file=sys.stderr)
        tree = parser.parse()
        print("--- Parsing SUCCEEDED ---", file=sys.stderr)

        report = visualizer.generate_parse_report(tree, parser.rule_trace, parser.grammar)
        return jsonify({
            "success": True,
            "ruleTrace": parser.rule_trace,
            "parseTreeDot": report['tree_dot'],
            "parseTreeText": report['tree_text'],
            "parseTreeLatex": report['tree_latex'],
            "traceHtml": report['trace_html'],
            "isLL1": parser.is_ll(1),
        })

    except ParseError as e:
        print(f"--- Parsing FAILED ---", file=sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        error_type = "no_applicable_production" if isinstance(e, NoApplicableProductionError) else "token_mismatch"
        return jsonify({
            "success": False,
            "error": str(e),
            "error_type": error_type,
            "error_html": visualizer.error_formatter.format_parse_error(e),
        }), 400

    except (GrammarError, ValueError) as e:
        print(f"--- Grammar Reduction FAILED: {e} ---", file=sys.stderr)
        return jsonify({"success": False, "error": str(e), "error_type": "grammar_error"}), 400

    except Exception as e:
        print(f"--- UNEXPECTED Python Error: {e} ---", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        error_message = f"Unexpected server error: {escapeHtml(str(e))}"
        return jsonify({"error": error_message, "error_type": "system_error"}), 500


# --- Main Execution ---
if __name__ == '__main__':
    print("--- LL(1) Front End Server ---")
    print(f"Running on http://127.0.0.1:5000")
    print("-" * 34)
    app.run(debug=True, port=5000, use_reloader=False)
