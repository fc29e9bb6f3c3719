"""HTTP blueprints and helpers shared between them."""
from flask import current_app, jsonify

from resume_forge.services.generation_queue import (
    ALREADY_IN_FLIGHT,
    INSUFFICIENT_CREDITS,
    EnqueueResult,
    request_generation,
)


def enqueue(user, artifact, use_case, params=None):
    """Run ``request_generation`` with the app's runner and ledger."""
    return request_generation(
        user,
        artifact,
        use_case,
        runner=current_app.extensions['job_runner'],
        ledger=current_app.extensions['credit_ledger'],
        params=params,
    )


def enqueue_response(result: EnqueueResult, artifact, **extra):
    """202 for accepted requests, 409/402 for rejections."""
    if result.status == ALREADY_IN_FLIGHT:
        return jsonify({'error': result.message, 'reason': result.status}), 409
    if result.status == INSUFFICIENT_CREDITS:
        return jsonify({'error': result.message, 'reason': result.status}), 402

    payload = artifact.to_dict()
    body = {
        'message': 'Generation started',
        'request_id': result.request.request_id,
        'use_case': result.request.use_case,
        payload['type']: payload,
    }
    body.update(extra)
    return jsonify(body), 202
