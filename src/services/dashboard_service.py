"""Read model for the home dashboard, built from the public profile only."""

from domain.model.user import User


def build_home(user: User) -> dict:
    total = user.total_amount or 0
    withdrawn = user.withdrawn_amount or 0
    return {
        'user': user.public_profile(),
        'stats': {
            'totalAmount': total,
            'depositedAmount': user.deposited_amount or 0,
            'withdrawnAmount': withdrawn,
            'netAmount': total - withdrawn,
        },
    }
