"""FriendFeed: users, friendships, posts and cached friend timelines."""
