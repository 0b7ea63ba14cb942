"""Reference Backend HTTP and push API"""
