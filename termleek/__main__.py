from termleek.main import main

main()
