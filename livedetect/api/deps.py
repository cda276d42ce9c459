from fastapi import Request

from livedetect.pipeline.stream_pipeline import StreamPipeline


def get_pipeline(request: Request) -> StreamPipeline:
    return request.app.state.pipeline
