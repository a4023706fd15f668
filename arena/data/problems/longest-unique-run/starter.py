def longest_unique_run(s):
    # return the length of the longest substring without repeated characters
    pass
