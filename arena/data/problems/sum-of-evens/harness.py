

def __arena_check(token):
    cases = [([1, 2, 3, 4], 6), ([], 0), ([7, 9], 0)]
    for nums, expected in cases:
        try:
            ok = sum_evens(list(nums)) == expected
        except Exception:
            ok = False
        print(f"@@PASS:{token}" if ok else f"@@FAIL:{token}")
    try:
        hidden = sum_evens([-2, -4, 5, 1000000]) == 999994
    except Exception:
        hidden = False
    print(f"@@HIDDEN_PASS:{token}" if hidden else f"@@HIDDEN_FAIL:{token}")


__arena_check("{{NONCE}}")
