def migrate(deployer):
    ticket_nft = deployer.artifacts.require("TicketNFT")
    user_account = deployer.artifacts.require("UserAccount")
    deployer.deploy(ticket_nft, user_account)
