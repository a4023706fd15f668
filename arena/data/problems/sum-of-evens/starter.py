def sum_evens(nums):
    # return the sum of the even numbers in nums
    pass
