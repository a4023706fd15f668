

def __arena_check(token):
    cases = [("()", True), ("()[]{}", True), ("(]", False), ("([)]", False)]
    for s, expected in cases:
        try:
            ok = is_valid(s) == expected
        except Exception:
            ok = False
        print(f"@@PASS:{token}" if ok else f"@@FAIL:{token}")
    try:
        hidden = is_valid("{[()()]}" * 500 + "(") is False
    except Exception:
        hidden = False
    print(f"@@HIDDEN_PASS:{token}" if hidden else f"@@HIDDEN_FAIL:{token}")


__arena_check("{{NONCE}}")
