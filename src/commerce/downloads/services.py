from protean.utils.globals import current_domain

from commerce.downloads.grant import DownloadGrant, GrantDownloadAccess
from commerce.shared.result import Result, dispatch


def create_plan_download_access(user_id, plan_id, order_id, subscription_id=None, reference=None) -> Result:
    """Grant ``user_id`` access to ``plan_id``.

    Returns a result whose data is ``{"created": [...], "failed": [...]}``.
    """
    created, failed = [], []
    result = dispatch(
        GrantDownloadAccess,
        user_id=user_id,
        plan_id=plan_id,
        order_id=order_id,
        subscription_id=subscription_id,
        reference=reference,
    )
    if result.success:
        created.append(result.data)
    else:
        failed.append({"plan_id": plan_id, "error": result.message})

    data = {"created": created, "failed": failed}
    if failed:
        return Result.fail("Failed to create plan download access", data=data)
    return Result.ok(data)


def check_download_access(user_id, plan_id) -> Result:
    if not user_id or not plan_id:
        return Result.fail("User ID and plan ID are required", data=False)
    grants = current_domain.repository_for(DownloadGrant).for_user(user_id, plan_id)
    return Result.ok(any(grant.enabled for grant in grants))


def get_user_downloads(user_id) -> Result:
    if not user_id:
        return Result.fail("User ID is required")
    grants = current_domain.repository_for(DownloadGrant).for_user(user_id)
    return Result.ok([grant for grant in grants if grant.enabled])
