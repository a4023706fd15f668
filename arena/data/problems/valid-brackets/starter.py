def is_valid(s):
    # return True if the brackets in s are balanced
    pass
