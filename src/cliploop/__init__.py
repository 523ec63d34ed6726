"""cliploop — duration-padded crossfade assembly and seamless clip loops.

Repeat a set of video and audio clips until they cover a target length,
join the videos with crossfades through a pairwise merge tree, and cut
the muxed result to the exact duration. Single clips can also be turned
into seamless loops.
"""
