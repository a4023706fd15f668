

def __arena_check(token):
    cases = [("abcabcbb", 3), ("bbbbb", 1), ("pwwkew", 3), ("", 0)]
    for s, expected in cases:
        try:
            ok = longest_unique_run(s) == expected
        except Exception:
            ok = False
        print(f"@@PASS:{token}" if ok else f"@@FAIL:{token}")
    try:
        alphabet = "abcdefghijklmnopqrstuvwxyz"
        hidden = longest_unique_run(alphabet * 4000) == 26
    except Exception:
        hidden = False
    print(f"@@HIDDEN_PASS:{token}" if hidden else f"@@HIDDEN_FAIL:{token}")


__arena_check("{{NONCE}}")
