"""
Core algorithms for repeat classification rounds.

- parsers: RepeatMasker .out reports into a rank-ordered match table
- classifier: three-tier subfamily / family / chimeric decision
- library: partition of unknown elements into .known and .unknown
- orchestrator: clade and library searches chained into rounds
"""
