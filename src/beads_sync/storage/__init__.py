"""Issue storage: in-process store, dependency graph, ids and JSONL files"""
