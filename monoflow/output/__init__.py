from .result_sink import ResultSink, GithubOutputSink, MemoryResultSink
